"""Health check endpoint for the push processing service."""

from pathlib import Path
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from pushhooks.config import settings
from pushhooks.db.session import get_db_session
from pushhooks.dependencies import get_task_queue
from pushhooks.schemas.health import HealthResponse
from pushhooks.services.task_queue import InMemoryTaskQueue, TaskQueue

router = APIRouter()

DBSession = Annotated[AsyncSession, Depends(get_db_session)]
Queue = Annotated[TaskQueue, Depends(get_task_queue)]


@router.get("/healthz", response_model=HealthResponse)
async def healthz(db: DBSession, queue: Queue) -> HealthResponse:
    """Report database, repository storage and task queue state.

    Database errors propagate as 500 so load balancers stop routing push
    tasks to an instance that cannot write events.
    """
    await db.execute(text("SELECT 1"))
    repos_ok = Path(settings.repositories_root).is_dir()
    return HealthResponse(
        status="ok" if repos_ok else "degraded",
        service=settings.app_name,
        database="connected",
        repositories="available" if repos_ok else "missing",
        task_queue="in_memory" if isinstance(queue, InMemoryTaskQueue) else "cloud_tasks",
    )
