"""Task queue used to fan a post-receive notification out into push tasks.

Production code uses ``CloudTasksQueue`` which wraps the synchronous
``google-cloud-tasks`` client in ``asyncio.to_thread`` so it never blocks the
event loop. Tests and local development use ``InMemoryTaskQueue`` which
captures enqueued tasks for assertion.

Each task is an HTTP POST of a JSON body to a task handler URL. A task may
carry a ``dedup_key``: enqueuing the same key twice yields one task, so a
post-receive hook that fires again for the same ref update does not process
the push twice.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
from typing import Protocol


class TaskQueue(Protocol):
    """Protocol for enqueuing HTTP POST tasks."""

    async def enqueue(self, url: str, payload: dict, *, dedup_key: str | None = None) -> str:
        """Enqueue an HTTP POST task with a JSON body.

        Returns a task identifier string.
        """
        ...


def push_dedup_key(project_id: int, oldrev: str, newrev: str, ref: str) -> str:
    """Stable task key for one ref update of one project."""
    raw = f"{project_id}:{oldrev}:{newrev}:{ref}".encode()
    return f"push-{hashlib.sha256(raw).hexdigest()[:32]}"


class CloudTasksQueue:
    """Production implementation backed by Google Cloud Tasks.

    The ``google.cloud.tasks_v2`` client is imported lazily so the module can
    be loaded without the GCP SDK installed.
    """

    def __init__(self, project: str, location: str, queue: str) -> None:
        from google.cloud import tasks_v2

        self._client = tasks_v2.CloudTasksClient()
        self._parent = self._client.queue_path(project, location, queue)

    async def enqueue(self, url: str, payload: dict, *, dedup_key: str | None = None) -> str:
        """Create an HTTP POST Cloud Task and return its name.

        A named task that already exists is reported by name instead of
        being created again.
        """
        from google.api_core.exceptions import AlreadyExists
        from google.cloud import tasks_v2

        task = tasks_v2.Task(
            http_request=tasks_v2.HttpRequest(
                http_method=tasks_v2.HttpMethod.POST,
                url=url,
                headers={"Content-Type": "application/json"},
                body=json.dumps(payload).encode(),
            ),
        )
        if dedup_key:
            task.name = f"{self._parent}/tasks/{dedup_key}"

        try:
            response = await asyncio.to_thread(
                self._client.create_task,
                tasks_v2.CreateTaskRequest(parent=self._parent, task=task),
            )
        except AlreadyExists:
            return task.name
        return response.name


class InMemoryTaskQueue:
    """Test double that records enqueued push tasks."""

    def __init__(self) -> None:
        self.tasks: list[dict] = []
        self._names: dict[str, str] = {}

    async def enqueue(self, url: str, payload: dict, *, dedup_key: str | None = None) -> str:
        """Append task to the in-memory list and return a fake task name."""
        if dedup_key and dedup_key in self._names:
            return self._names[dedup_key]
        self.tasks.append({"url": url, "payload": payload})
        name = f"fake-push-task-{len(self.tasks)}"
        if dedup_key:
            self._names[dedup_key] = name
        return name
