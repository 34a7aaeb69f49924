"""Task handler router for processing push tasks.

Called by the task queue (Cloud Tasks or in-memory) once per ref update.
A non-2xx answer makes Cloud Tasks retry the task, so only unexpected
failures map to 500; an unknown project or user is permanent and maps to
404.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from pushhooks.db.session import get_db_session
from pushhooks.dependencies import get_push_service
from pushhooks.schemas.tasks import ProcessPushPayload, ProcessPushResponse
from pushhooks.services.git_push import GitPushService
from pushhooks.services.push_data import PushPreconditionError

logger = structlog.get_logger()

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.post("/process-push", response_model=ProcessPushResponse)
async def handle_process_push(
    payload: ProcessPushPayload,
    session: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[GitPushService, Depends(get_push_service)],
) -> ProcessPushResponse:
    """Run the push pipeline for one ref update."""
    with structlog.contextvars.bound_contextvars(project_id=payload.project_id, ref=payload.ref):
        try:
            result = await service.execute(
                session,
                project_id=payload.project_id,
                user_id=payload.user_id,
                oldrev=payload.oldrev,
                newrev=payload.newrev,
                ref=payload.ref,
            )
        except PushPreconditionError as exc:
            logger.warning("push_rejected", reason=str(exc))
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from None
        except Exception:
            logger.exception("process_push_failed")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to process push to {payload.ref}",
            ) from None

    return ProcessPushResponse(
        status="processed",
        event_id=result.event_id,
        change=result.change.kind.value,
        commits=result.commits,
        hooks_fired=result.hooks_fired,
        notes_created=result.notes_created,
        issues_closed=result.issues_closed,
    )
