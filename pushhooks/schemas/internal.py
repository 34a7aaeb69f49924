"""Pydantic models for the git server's post-receive notification."""

from pydantic import BaseModel, Field, field_validator


class RefUpdate(BaseModel):
    """One ``oldrev newrev ref`` line from a post-receive hook."""

    oldrev: str = Field(min_length=1)
    newrev: str = Field(min_length=1)
    ref: str = Field(min_length=1)


class PostReceiveRequest(BaseModel):
    """Request body for POST /internal/post-receive.

    ``changes`` accepts either a list of ref updates or the raw text a
    post-receive hook reads on stdin, one ``oldrev newrev ref`` per line.
    """

    project_id: int
    user_id: int
    changes: list[RefUpdate] = Field(min_length=1)

    @field_validator("changes", mode="before")
    @classmethod
    def _parse_raw_changes(cls, value: object) -> object:
        if not isinstance(value, str):
            return value
        updates = []
        for line in value.splitlines():
            parts = line.split()
            if not parts:
                continue
            if len(parts) != 3:
                msg = f"expected 'oldrev newrev ref', got {line!r}"
                raise ValueError(msg)
            oldrev, newrev, ref = parts
            updates.append({"oldrev": oldrev, "newrev": newrev, "ref": ref})
        return updates


class PostReceiveResponse(BaseModel):
    """Response body for POST /internal/post-receive."""

    status: str
    tasks_enqueued: int
