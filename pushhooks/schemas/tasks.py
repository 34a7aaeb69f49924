"""Pydantic models for push task payloads and results."""

from pydantic import BaseModel, Field


class ProcessPushPayload(BaseModel):
    """Payload for process-push tasks enqueued by the post-receive endpoint."""

    project_id: int
    user_id: int
    oldrev: str = Field(min_length=1)
    newrev: str = Field(min_length=1)
    ref: str = Field(min_length=1)


class ProcessPushResponse(BaseModel):
    """Outcome of running the push pipeline for one ref update."""

    status: str
    event_id: int
    change: str
    commits: int
    hooks_fired: int
    notes_created: int
    issues_closed: int
