"""Durable push event records in the project activity log."""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from pushhooks.db.models import Event
from pushhooks.schemas.push import PushEvent

logger = structlog.get_logger()


async def record_push_event(session: AsyncSession, push_data: PushEvent) -> int:
    """Append a "pushed" event carrying the payload and return its id."""
    event = Event(
        project_id=push_data.project_id,
        author_id=push_data.user_id,
        action=Event.PUSHED,
        data=push_data.model_dump(mode="json"),
    )
    session.add(event)
    await session.flush()  # Get the generated ID

    logger.info("push_event_recorded", event_id=event.id, project_id=push_data.project_id)
    return event.id
