"""Cross-reference notes for issues mentioned by pushed commits."""

from __future__ import annotations

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pushhooks.db.models import User
from pushhooks.services.history import Commit
from pushhooks.services.references import IssueReference
from pushhooks.services.trackers import IssueTracker

logger = structlog.get_logger()


async def find_commit_author(session: AsyncSession, commit: Commit) -> User | None:
    """Return the local user who authored ``commit``, if there is one.

    Matches on the author email first, then on the author name.
    """
    if commit.author_email:
        result = await session.execute(
            select(User).where(func.lower(User.email) == commit.author_email.lower())
        )
        user = result.scalars().first()
        if user is not None:
            return user

    if commit.author_name:
        result = await session.execute(select(User).where(User.name == commit.author_name))
        return result.scalars().first()

    return None


async def notify_cross_reference(
    tracker: IssueTracker,
    reference: IssueReference,
    commit: Commit,
    author: User,
) -> bool:
    """Record that ``commit`` mentions the referenced issue.

    ``author`` is the commit author when known locally, otherwise the pushing
    user. Closing references and tokens the tracker cannot resolve are
    skipped. A mention that was already recorded is a no-op.

    Returns True when a new mention was recorded.
    """
    if reference.is_closing:
        return False

    handle = await tracker.resolve(reference.issue_id)
    if handle is None:
        logger.debug("unresolved_reference", issue=reference.issue_id, commit_id=commit.id)
        return False

    return await tracker.comment(handle, commit, author)
