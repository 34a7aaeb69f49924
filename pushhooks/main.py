"""FastAPI application factory with lifespan context manager."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from pushhooks.config import settings
from pushhooks.db.engine import dispose_engine, init_engine
from pushhooks.dependencies import close_http_deps, init_http_deps
from pushhooks.logging_config import configure_logging
from pushhooks.routers import health, internal, tasks


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan: database engine and shared HTTP client."""
    configure_logging(
        json_logs=not settings.debug,
        log_level=settings.log_level,
        service=settings.app_name,
    )
    await init_engine(settings.database_url, echo=settings.debug)
    await init_http_deps(settings.http_timeout)

    if settings.gcp_project:
        from pushhooks.dependencies import init_production_deps

        init_production_deps(
            gcp_project=settings.gcp_project,
            gcp_location=settings.gcp_location,
            cloud_tasks_queue=settings.cloud_tasks_queue,
        )

    yield
    await close_http_deps()
    await dispose_engine()


app = FastAPI(title=settings.app_name, lifespan=lifespan)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return a JSON 500 response for any unhandled exception."""
    logger = structlog.get_logger()
    logger.exception("unhandled_exception", path=request.url.path, method=request.method)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


app.include_router(health.router)
app.include_router(internal.router)
app.include_router(tasks.router)
