"""SQLAlchemy ORM models for projects, issues and push side effects."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

ISSUE_OPENED = "opened"
ISSUE_CLOSED = "closed"

TRACKER_INTERNAL = "internal"
TRACKER_JIRA = "jira"


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class User(Base):
    """A user who pushes code or authors commits."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(String(255), unique=True)
    name: Mapped[str] = mapped_column(String(255))
    email: Mapped[str] = mapped_column(String(255), unique=True)


class Project(Base):
    """A hosted repository and the settings that drive push processing."""

    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    path_with_namespace: Mapped[str] = mapped_column(String(512), unique=True)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    # NULL until the first branch is pushed to an empty repository.
    default_branch: Mapped[str | None] = mapped_column(String(255), default=None)
    # NULL falls back to settings.default_branch_protection.
    branch_protection: Mapped[int | None] = mapped_column(default=None)
    issues_tracker: Mapped[str] = mapped_column(String(32), default=TRACKER_INTERNAL)
    issues_tracker_url: Mapped[str | None] = mapped_column(String(1024), default=None)


class Issue(Base):
    """An issue in the project's internal tracker, addressed by ``#iid``."""

    __tablename__ = "issues"

    id: Mapped[int] = mapped_column(primary_key=True)
    project_id: Mapped[int] = mapped_column(ForeignKey("projects.id", ondelete="CASCADE"))
    iid: Mapped[int]
    title: Mapped[str] = mapped_column(String(255))
    state: Mapped[str] = mapped_column(String(32), default=ISSUE_OPENED)
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), onupdate=func.now())

    __table_args__ = (UniqueConstraint("project_id", "iid", name="uq_issues_project_iid"),)


class Note(Base):
    """A comment on an issue. Cross-reference notes carry the mentioning commit."""

    __tablename__ = "notes"

    id: Mapped[int] = mapped_column(primary_key=True)
    project_id: Mapped[int] = mapped_column(ForeignKey("projects.id", ondelete="CASCADE"))
    issue_id: Mapped[int] = mapped_column(ForeignKey("issues.id", ondelete="CASCADE"))
    commit_id: Mapped[str | None] = mapped_column(String(40), default=None)
    author_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    note: Mapped[str] = mapped_column(Text)
    system: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())

    __table_args__ = (
        UniqueConstraint(
            "project_id", "issue_id", "commit_id", name="uq_notes_project_issue_commit"
        ),
    )


class Event(Base):
    """An entry in the project activity log."""

    __tablename__ = "events"

    PUSHED = 5

    id: Mapped[int] = mapped_column(primary_key=True)
    project_id: Mapped[int] = mapped_column(ForeignKey("projects.id", ondelete="CASCADE"))
    author_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    action: Mapped[int]
    data: Mapped[dict] = mapped_column(JSONB)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())

    __table_args__ = (Index("ix_events_project_created", "project_id", "created_at"),)


class ProtectedBranch(Base):
    """A branch whose pushes are restricted."""

    __tablename__ = "protected_branches"

    id: Mapped[int] = mapped_column(primary_key=True)
    project_id: Mapped[int] = mapped_column(ForeignKey("projects.id", ondelete="CASCADE"))
    name: Mapped[str] = mapped_column(String(255))
    developers_can_push: Mapped[bool] = mapped_column(Boolean, default=False)

    __table_args__ = (
        UniqueConstraint("project_id", "name", name="uq_protected_branches_project_name"),
    )


class ProjectHook(Base):
    """An outbound webhook registered on a project."""

    __tablename__ = "project_hooks"

    id: Mapped[int] = mapped_column(primary_key=True)
    project_id: Mapped[int] = mapped_column(ForeignKey("projects.id", ondelete="CASCADE"))
    url: Mapped[str] = mapped_column(String(2048))
    push_events: Mapped[bool] = mapped_column(Boolean, default=True)
