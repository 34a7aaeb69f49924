"""Assemble the push event payload from project, user and commit data."""

from __future__ import annotations

from collections.abc import Sequence

from pushhooks.db.models import Project, User
from pushhooks.schemas.push import CommitAuthor, CommitSummary, PushEvent, RepositoryInfo
from pushhooks.services.history import Commit
from pushhooks.services.ref_change import BLANK_SHA


class PushPreconditionError(Exception):
    """The push cannot be processed as delivered.

    Raised for an unknown project or user and for an update that names no
    revision at all. Retrying will not help.
    """


def project_web_url(base_url: str, project: Project) -> str:
    return f"{base_url.rstrip('/')}/{project.path_with_namespace}"


def commit_url(base_url: str, project: Project, commit_id: str) -> str:
    return f"{project_web_url(base_url, project)}/commit/{commit_id}"


def build_push_data(
    project: Project | None,
    user: User | None,
    oldrev: str,
    newrev: str,
    ref: str,
    commits: Sequence[Commit],
    *,
    base_url: str,
    clone_url_prefix: str,
) -> PushEvent:
    """Build the canonical push event payload.

    Pure assembly, no I/O. A missing description is sent as an empty string
    so consumers always see every key.

    Raises:
        PushPreconditionError: If ``project`` or ``user`` is missing,
            or if both revisions are blank.
    """
    if project is None:
        raise PushPreconditionError("push payload needs a project")
    if user is None:
        raise PushPreconditionError("push payload needs a user")
    if oldrev == BLANK_SHA and newrev == BLANK_SHA:
        raise PushPreconditionError("push has neither an old nor a new revision")

    return PushEvent(
        before=oldrev,
        after=newrev,
        ref=ref,
        user_id=user.id,
        user_name=user.name,
        project_id=project.id,
        repository=RepositoryInfo(
            name=project.name,
            url=f"{clone_url_prefix}{project.path_with_namespace}.git",
            description=project.description or "",
            homepage=project_web_url(base_url, project),
        ),
        commits=tuple(
            CommitSummary(
                id=commit.id,
                message=commit.message,
                timestamp=commit.date.isoformat(),
                url=commit_url(base_url, project, commit.id),
                author=CommitAuthor(name=commit.author_name, email=commit.author_email),
            )
            for commit in commits
        ),
    )
