"""Push processing pipeline.

Runs once per ref update: classify the update, find the commits it
introduced, build the payload, cross-reference and close issues named in
commit messages, record the push event and fire the project's webhooks.

Steps that only enrich the push (history lookups, tracker calls, webhook
delivery) degrade instead of failing it. The only hard failures are an
unknown project or user and an update with no revision on either side,
reported before anything is written.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import httpx
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from pushhooks.db.models import Project, User
from pushhooks.schemas.push import PushEvent
from pushhooks.services.commit_range import resolve_push_commits
from pushhooks.services.cross_references import find_commit_author, notify_cross_reference
from pushhooks.services.event_log import record_push_event
from pushhooks.services.history import Commit, HistoryStore
from pushhooks.services.issue_closer import close_referenced_issue
from pushhooks.services.push_data import PushPreconditionError, build_push_data
from pushhooks.services.ref_change import BLANK_SHA, RefChange, RefChangeKind, classify
from pushhooks.services.references import scan_commit
from pushhooks.services.trackers import IssueTracker, build_tracker
from pushhooks.services.webhooks import (
    WebhookTransport,
    execute_push_hooks,
    protect_default_branch,
)

logger = structlog.get_logger()

TrackerFactory = Callable[[Project, AsyncSession, httpx.AsyncClient], IssueTracker]


@dataclass
class PushResult:
    """Summary of one pipeline run."""

    event_id: int
    change: RefChange
    push_data: PushEvent
    hooks_fired: int = 0
    notes_created: int = 0
    issues_closed: int = 0

    @property
    def commits(self) -> int:
        return len(self.push_data.commits)


class GitPushService:
    """Processes pushes for any project.

    Holds no per-push state, so one instance can serve concurrent pushes as
    long as each call gets its own session.
    """

    def __init__(
        self,
        *,
        history_factory: Callable[[Project], HistoryStore],
        transport: WebhookTransport,
        http_client: httpx.AsyncClient,
        base_url: str,
        clone_url_prefix: str,
        default_branch_protection: int,
        tracker_factory: TrackerFactory = build_tracker,
    ) -> None:
        self.history_factory = history_factory
        self.transport = transport
        self.http_client = http_client
        self.base_url = base_url
        self.clone_url_prefix = clone_url_prefix
        self.default_branch_protection = default_branch_protection
        self.tracker_factory = tracker_factory

    async def execute(
        self,
        session: AsyncSession,
        project_id: int,
        user_id: int,
        oldrev: str,
        newrev: str,
        ref: str,
    ) -> PushResult:
        """Process one ref update pushed by ``user_id`` to ``project_id``.

        Raises:
            PushPreconditionError: If the project or user does not exist, or
                if both revisions are blank.
        """
        if oldrev == BLANK_SHA and newrev == BLANK_SHA:
            raise PushPreconditionError("push has neither an old nor a new revision")
        project = await session.get(Project, project_id)
        if project is None:
            raise PushPreconditionError(f"project {project_id} not found")
        user = await session.get(User, user_id)
        if user is None:
            raise PushPreconditionError(f"user {user_id} not found")

        default_branch = project.default_branch
        change = classify(oldrev, newrev, ref, default_branch)

        commits = await resolve_push_commits(
            self.history_factory(project), change, oldrev, newrev, default_branch
        )
        push_data = build_push_data(
            project,
            user,
            oldrev,
            newrev,
            ref,
            commits,
            base_url=self.base_url,
            clone_url_prefix=self.clone_url_prefix,
        )

        if change.kind is RefChangeKind.BRANCH_CREATED and change.is_default_branch:
            await self._adopt_default_branch(session, project, change)

        notes_created = issues_closed = 0
        if commits:
            tracker = self.tracker_factory(project, session, self.http_client)
            for commit in commits:
                created, closed = await self._process_commit_message(
                    session, tracker, commit, user, change
                )
                notes_created += created
                issues_closed += closed

        event_id = await record_push_event(session, push_data)
        hooks_fired = await execute_push_hooks(session, self.transport, project, change, push_data)

        logger.info(
            "push_processed",
            project_id=project.id,
            ref=ref,
            change=change.kind.value,
            commits=len(commits),
            notes_created=notes_created,
            issues_closed=issues_closed,
            hooks_fired=hooks_fired,
        )
        return PushResult(
            event_id=event_id,
            change=change,
            push_data=push_data,
            hooks_fired=hooks_fired,
            notes_created=notes_created,
            issues_closed=issues_closed,
        )

    async def _adopt_default_branch(
        self, session: AsyncSession, project: Project, change: RefChange
    ) -> None:
        if project.default_branch is None:
            project.default_branch = change.branch_name
            logger.info("default_branch_set", project_id=project.id, branch=change.branch_name)
        await protect_default_branch(
            session, project, change.branch_name, self.default_branch_protection
        )

    async def _process_commit_message(
        self,
        session: AsyncSession,
        tracker: IssueTracker,
        commit: Commit,
        pusher: User,
        change: RefChange,
    ) -> tuple[int, int]:
        references = scan_commit(commit, tracker)
        if not references:
            return 0, 0

        author = await find_commit_author(session, commit) or pusher

        created = closed = 0
        for reference in references:
            if reference.is_closing:
                closed += await close_referenced_issue(tracker, reference, commit, author, change)
            else:
                created += await notify_cross_reference(tracker, reference, commit, author)
        return created, closed
