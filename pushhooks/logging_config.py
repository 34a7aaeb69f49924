"""Structured logging configuration using structlog.

Provides a single ``configure_logging`` entry-point that sets up structlog
processors and routes the stdlib root logger through the same pipeline, so
records from httpx, SQLAlchemy and uvicorn come out in the same format as
the service's own events: JSON in production, console output in development.
"""

from __future__ import annotations

import logging
import sys

import structlog

# Libraries that log every request at INFO.
_NOISY_LOGGERS = ("httpx", "httpcore")


def configure_logging(
    *,
    json_logs: bool = True,
    log_level: str = "INFO",
    service: str | None = None,
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        json_logs: When *True* (default / production), render logs as JSON.
            When *False* (development), use a colourful console renderer.
        log_level: Root log level name (e.g. ``"INFO"``, ``"DEBUG"``).
        service: Optional service name added to every event as ``service``.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if service:
        shared_processors.append(_add_service(service))

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    render_processors: list[structlog.types.Processor] = [
        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
    ]
    if json_logs:
        render_processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        render_processors.append(structlog.dev.ConsoleRenderer())

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=render_processors,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level.upper())

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _add_service(service: str) -> structlog.types.Processor:
    def processor(logger, method_name, event_dict):  # noqa: ARG001
        event_dict.setdefault("service", service)
        return event_dict

    return processor
