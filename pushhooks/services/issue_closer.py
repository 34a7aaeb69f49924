"""Close issues named by closing keywords in pushed commits."""

from __future__ import annotations

import structlog

from pushhooks.db.models import User
from pushhooks.services.history import Commit
from pushhooks.services.ref_change import RefChange
from pushhooks.services.references import IssueReference
from pushhooks.services.trackers import IssueTracker

logger = structlog.get_logger()


async def close_referenced_issue(
    tracker: IssueTracker,
    reference: IssueReference,
    commit: Commit,
    author: User,
    change: RefChange,
) -> bool:
    """Close the issue a closing reference points at.

    Only pushes to the default branch close issues; on any other branch a
    closing reference does nothing at all. Trackers with
    ``comments_on_close`` also get a mention comment for the closing commit.

    Returns True when the tracker reported the issue closed.
    """
    if not reference.is_closing or not change.is_default_branch:
        return False

    handle = await tracker.resolve(reference.issue_id)
    if handle is None:
        logger.debug("unresolved_closing_reference", issue=reference.issue_id, commit_id=commit.id)
        return False

    closed = await tracker.close(handle, commit, author)
    if tracker.comments_on_close:
        await tracker.comment(handle, commit, author)
    return closed
