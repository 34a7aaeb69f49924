"""Internal router called by the git server's post-receive hook."""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, status

from pushhooks.config import settings
from pushhooks.dependencies import get_task_queue
from pushhooks.schemas.internal import PostReceiveRequest, PostReceiveResponse
from pushhooks.schemas.tasks import ProcessPushPayload
from pushhooks.services.task_queue import TaskQueue, push_dedup_key

logger = structlog.get_logger()

router = APIRouter(prefix="/internal", tags=["internal"])


@router.post(
    "/post-receive",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=PostReceiveResponse,
)
async def post_receive(
    request: PostReceiveRequest,
    task_queue: Annotated[TaskQueue, Depends(get_task_queue)],
) -> PostReceiveResponse:
    """Accept a push and enqueue one process-push task per updated ref.

    Answers before any processing happens so the git client is never kept
    waiting on notification work.
    """
    url = f"{settings.task_handler_base_url}/tasks/process-push"

    for update in request.changes:
        payload = ProcessPushPayload(
            project_id=request.project_id,
            user_id=request.user_id,
            oldrev=update.oldrev,
            newrev=update.newrev,
            ref=update.ref,
        )
        await task_queue.enqueue(
            url,
            payload.model_dump(),
            dedup_key=push_dedup_key(request.project_id, update.oldrev, update.newrev, update.ref),
        )

    logger.info(
        "post_receive_accepted",
        project_id=request.project_id,
        user_id=request.user_id,
        refs=len(request.changes),
    )
    return PostReceiveResponse(status="accepted", tasks_enqueued=len(request.changes))
