"""Issue tracker adapters used when processing commit messages.

Every tracker finds issue references in text, resolves them to issues and
can close or comment on them:

- ``InternalIssueTracker`` works against the project's own ``issues`` table.
  References look like ``#12`` and commenting creates a cross-reference
  system note.
- ``JiraIssueTracker`` talks to a JIRA server. References look like
  ``PROJ-12``; closing runs a workflow transition and commenting posts a
  remote comment. Remote failures are logged, never raised.

``build_tracker`` picks the implementation from the project configuration.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Protocol

import httpx
import structlog
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from pushhooks.config import settings
from pushhooks.db.models import (
    ISSUE_CLOSED,
    TRACKER_INTERNAL,
    TRACKER_JIRA,
    Issue,
    Note,
    Project,
    User,
)
from pushhooks.services.history import Commit
from pushhooks.services.jira_client import add_comment, transition_issue
from pushhooks.services.push_data import commit_url

logger = structlog.get_logger()

# Largest value the ``issues.iid`` integer column can hold.
_MAX_IID = 2**31 - 1


@dataclass(frozen=True)
class IssueHandle:
    """A resolved issue reference.

    ``issue_id`` is the local row id for internal issues and None for issues
    that only exist in an external tracker.
    """

    key: str
    issue_id: int | None = None


class IssueTracker(Protocol):
    """Capability interface shared by all trackers."""

    # Whether closing an issue should also post a mention comment.
    comments_on_close: bool

    def match_references(self, text: str) -> list[str]:
        """Return every issue token mentioned in ``text``."""
        ...

    def match_closing(self, text: str) -> list[str]:
        """Return the issue tokens ``text`` closes."""
        ...

    async def resolve(self, token: str) -> IssueHandle | None:
        """Return a handle for ``token``, or None if it names no issue."""
        ...

    async def close(self, handle: IssueHandle, commit: Commit, author: User) -> bool:
        """Close the issue. Returns True if the issue changed state."""
        ...

    async def comment(self, handle: IssueHandle, commit: Commit, author: User) -> bool:
        """Record that ``commit`` mentions the issue. Returns True if recorded."""
        ...


class _PatternMatcher:
    """Reference and closing-keyword matching shared by the trackers.

    Subclasses set ``reference_pattern`` (one token, no capture groups) and
    may override ``_token`` to normalise a matched token.
    """

    reference_pattern: str = ""

    def __init__(self, closing_pattern: str) -> None:
        self._reference_re = re.compile(self.reference_pattern)
        closing = closing_pattern.replace("{issue_ref}", self.reference_pattern)
        self._closing_re = re.compile(closing)

    def match_references(self, text: str) -> list[str]:
        return _unique(self._token(m.group(0)) for m in self._reference_re.finditer(text))

    def match_closing(self, text: str) -> list[str]:
        tokens: list[str] = []
        for closing in self._closing_re.finditer(text):
            tokens.extend(self.match_references(closing.group(0)))
        return _unique(tokens)

    def _token(self, match: str) -> str:
        return match


class InternalIssueTracker(_PatternMatcher):
    """Tracker backed by the project's own issues."""

    reference_pattern = r"#\d+"
    comments_on_close = False

    def __init__(
        self,
        session: AsyncSession,
        project: Project,
        *,
        closing_pattern: str = settings.issue_closing_pattern,
    ) -> None:
        super().__init__(closing_pattern)
        self._session = session
        self._project = project

    def _token(self, match: str) -> str:
        return match.lstrip("#")

    async def resolve(self, token: str) -> IssueHandle | None:
        if not token.isdigit() or int(token) > _MAX_IID:
            return None
        result = await self._session.execute(
            select(Issue.id).where(Issue.project_id == self._project.id, Issue.iid == int(token))
        )
        issue_id = result.scalar_one_or_none()
        if issue_id is None:
            return None
        return IssueHandle(key=token, issue_id=issue_id)

    async def close(self, handle: IssueHandle, commit: Commit, author: User) -> bool:
        issue = await self._session.get(Issue, handle.issue_id)
        if issue is None or issue.state == ISSUE_CLOSED:
            return False
        issue.state = ISSUE_CLOSED
        logger.info(
            "issue_closed",
            project_id=self._project.id,
            iid=issue.iid,
            commit_id=commit.id,
            author_id=author.id,
        )
        return True

    async def comment(self, handle: IssueHandle, commit: Commit, author: User) -> bool:
        """Create the cross-reference note unless one already exists.

        The (project, issue, commit) unique constraint decides; a conflicting
        insert is a successful no-op.
        """
        stmt = (
            pg_insert(Note)
            .values(
                project_id=self._project.id,
                issue_id=handle.issue_id,
                commit_id=commit.id,
                author_id=author.id,
                note=f"_mentioned in commit {commit.short_id}_",
                system=True,
            )
            .on_conflict_do_nothing(constraint="uq_notes_project_issue_commit")
            .returning(Note.id)
        )
        result = await self._session.execute(stmt)
        created = result.scalar_one_or_none() is not None
        if created:
            logger.info(
                "cross_reference_created",
                project_id=self._project.id,
                issue_id=handle.issue_id,
                commit_id=commit.id,
                author_id=author.id,
            )
        return created


class JiraIssueTracker(_PatternMatcher):
    """Tracker that forwards closes and mentions to a JIRA server."""

    reference_pattern = r"\b[A-Z][A-Z0-9_]+-\d+\b"
    comments_on_close = True

    def __init__(
        self,
        client: httpx.AsyncClient,
        project: Project,
        *,
        api_url: str,
        auth: tuple[str, str] | None = None,
        transition_id: str = "2",
        base_url: str = settings.base_url,
        closing_pattern: str = settings.issue_closing_pattern,
    ) -> None:
        super().__init__(closing_pattern)
        self._client = client
        self._project = project
        self.api_url = api_url
        self._auth = auth
        self._transition_id = transition_id
        self._base_url = base_url

    async def resolve(self, token: str) -> IssueHandle | None:
        if not self._reference_re.fullmatch(token):
            return None
        return IssueHandle(key=token)

    async def close(self, handle: IssueHandle, commit: Commit, author: User) -> bool:
        if not self._configured():
            return False
        url = commit_url(self._base_url, self._project, commit.id)
        try:
            await transition_issue(
                self._client,
                self.api_url,
                handle.key,
                self._transition_id,
                f"Issue solved with [{commit.id}|{url}].",
                auth=self._auth,
            )
        except httpx.HTTPError:
            logger.exception("jira_transition_failed", issue=handle.key, commit_id=commit.id)
            return False
        logger.info("jira_issue_closed", issue=handle.key, commit_id=commit.id)
        return True

    async def comment(self, handle: IssueHandle, commit: Commit, author: User) -> bool:
        if not self._configured():
            return False
        url = commit_url(self._base_url, self._project, commit.id)
        body = (
            f"{author.name} mentioned {handle.key} in commit [{commit.id}|{url}]:\n"
            f"{{quote}}{commit.title}{{quote}}"
        )
        try:
            await add_comment(self._client, self.api_url, handle.key, body, auth=self._auth)
        except httpx.HTTPError:
            logger.exception("jira_comment_failed", issue=handle.key, commit_id=commit.id)
            return False
        logger.info("jira_issue_mentioned", issue=handle.key, commit_id=commit.id)
        return True

    def _configured(self) -> bool:
        if self.api_url:
            return True
        logger.warning("jira_not_configured", project_id=self._project.id)
        return False


def build_tracker(
    project: Project,
    session: AsyncSession,
    http_client: httpx.AsyncClient,
) -> IssueTracker:
    """Return the tracker configured for ``project``."""
    if project.issues_tracker == TRACKER_JIRA:
        auth = None
        if settings.jira_username:
            auth = (settings.jira_username, settings.jira_password)
        return JiraIssueTracker(
            http_client,
            project,
            api_url=project.issues_tracker_url or settings.jira_api_url,
            auth=auth,
            transition_id=settings.jira_close_transition_id,
            base_url=settings.base_url,
            closing_pattern=settings.issue_closing_pattern,
        )

    if project.issues_tracker != TRACKER_INTERNAL:
        logger.warning(
            "unknown_issue_tracker",
            project_id=project.id,
            issues_tracker=project.issues_tracker,
        )
    return InternalIssueTracker(session, project, closing_pattern=settings.issue_closing_pattern)


def _unique(tokens) -> list[str]:
    seen: list[str] = []
    for token in tokens:
        if token not in seen:
            seen.append(token)
    return seen
