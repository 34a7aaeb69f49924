"""Centralized FastAPI dependencies for use with Depends()."""

from pathlib import Path

import httpx

from pushhooks.config import settings
from pushhooks.db.models import Project
from pushhooks.db.session import get_db_session
from pushhooks.services.git_push import GitPushService
from pushhooks.services.history import GitHistoryStore
from pushhooks.services.task_queue import InMemoryTaskQueue, TaskQueue
from pushhooks.services.webhooks import (
    HttpWebhookTransport,
    InMemoryWebhookTransport,
    WebhookTransport,
)

_task_queue: TaskQueue = InMemoryTaskQueue()
_webhook_transport: WebhookTransport = InMemoryWebhookTransport()
_http_client: httpx.AsyncClient | None = None


def init_production_deps(
    gcp_project: str,
    gcp_location: str,
    cloud_tasks_queue: str,
) -> None:
    """Swap the in-memory task queue for Google Cloud Tasks.

    Uses lazy imports so the module loads without GCP SDKs installed.
    """
    global _task_queue  # noqa: PLW0603

    from pushhooks.services.task_queue import CloudTasksQueue

    _task_queue = CloudTasksQueue(gcp_project, gcp_location, cloud_tasks_queue)


async def init_http_deps(timeout: float) -> None:
    """Open the shared HTTP client and deliver webhooks through it."""
    global _http_client, _webhook_transport  # noqa: PLW0603

    _http_client = httpx.AsyncClient(timeout=timeout)
    _webhook_transport = HttpWebhookTransport(_http_client)


async def close_http_deps() -> None:
    """Close the shared HTTP client."""
    global _http_client  # noqa: PLW0603

    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None


def get_task_queue() -> TaskQueue:
    """Return the application task queue instance.

    Defaults to InMemoryTaskQueue for development and testing.
    Swapped to Cloud Tasks by ``init_production_deps()``.
    """
    return _task_queue


def get_webhook_transport() -> WebhookTransport:
    """Return the webhook transport.

    Defaults to InMemoryWebhookTransport until ``init_http_deps()`` runs.
    """
    return _webhook_transport


def get_http_client() -> httpx.AsyncClient:
    """Return the shared HTTP client used for tracker calls.

    Raises:
        RuntimeError: If ``init_http_deps()`` has not been called.
    """
    if _http_client is None:
        msg = "HTTP client not initialized. Call init_http_deps() first."
        raise RuntimeError(msg)
    return _http_client


def git_history_for(project: Project) -> GitHistoryStore:
    """Return a history store reading the project's bare repository."""
    repo_path = Path(settings.repositories_root) / f"{project.path_with_namespace}.git"
    return GitHistoryStore(repo_path, git_bin=settings.git_bin, timeout=settings.git_timeout)


def get_push_service() -> GitPushService:
    """Build the push pipeline from the current dependencies and settings."""
    return GitPushService(
        history_factory=git_history_for,
        transport=get_webhook_transport(),
        http_client=get_http_client(),
        base_url=settings.base_url,
        clone_url_prefix=settings.clone_url_prefix,
        default_branch_protection=settings.default_branch_protection,
    )


__all__ = [
    "close_http_deps",
    "get_db_session",
    "get_http_client",
    "get_push_service",
    "get_task_queue",
    "get_webhook_transport",
    "git_history_for",
    "init_http_deps",
    "init_production_deps",
]
