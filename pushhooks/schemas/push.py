"""Pydantic models for the push event payload.

The serialized form of ``PushEvent`` is what webhook consumers receive and
what the event log stores. Field names and nesting must not change.
"""

from pydantic import BaseModel, ConfigDict, model_validator

from pushhooks.services.ref_change import BLANK_SHA


class CommitAuthor(BaseModel):
    """Author information from a Git commit."""

    model_config = ConfigDict(frozen=True)

    name: str
    email: str


class CommitSummary(BaseModel):
    """A single commit within a push event."""

    model_config = ConfigDict(frozen=True)

    id: str
    message: str
    timestamp: str
    url: str
    author: CommitAuthor


class RepositoryInfo(BaseModel):
    """Project metadata captured at push time."""

    model_config = ConfigDict(frozen=True)

    name: str
    url: str
    description: str = ""
    homepage: str


class PushEvent(BaseModel):
    """Canonical push event payload."""

    model_config = ConfigDict(frozen=True)

    before: str
    after: str
    ref: str
    user_id: int
    user_name: str
    project_id: int
    repository: RepositoryInfo
    commits: tuple[CommitSummary, ...] = ()

    @model_validator(mode="after")
    def _check_revisions(self) -> "PushEvent":
        if self.before == BLANK_SHA and self.after == BLANK_SHA:
            msg = "before and after cannot both be the blank revision"
            raise ValueError(msg)
        return self
