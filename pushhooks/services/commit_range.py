"""Work out which commits a ref update introduced."""

from __future__ import annotations

from collections.abc import Awaitable

import structlog

from pushhooks.services.history import Commit, HistoryLookupError, HistoryStore
from pushhooks.services.ref_change import BLANK_SHA, RefChange, RefChangeKind

logger = structlog.get_logger()


async def resolve_push_commits(
    history: HistoryStore,
    change: RefChange,
    oldrev: str,
    newrev: str,
    default_branch: str | None,
) -> list[Commit]:
    """Return the commits introduced by a push, oldest first.

    An updated branch reports ``oldrev..newrev``. A new branch has no lower
    boundary, so the first non-empty of these wins:

    1. ``BLANK..newrev``
    2. ``default_branch..newrev`` when pushing some other branch
    3. the full ancestry of ``newrev``

    A first push to the default branch therefore reports its whole history.
    Removed branches and non-branch refs introduce nothing. A lookup failure
    counts as an empty answer; this function does not raise.
    """
    if change.kind is RefChangeKind.BRANCH_UPDATED:
        return await _safe(history.commits_between(oldrev, newrev), "commits_between")

    if change.kind is not RefChangeKind.BRANCH_CREATED:
        return []

    commits = await _safe(history.commits_between(BLANK_SHA, newrev), "commits_between")
    if not commits and default_branch and not change.is_default_branch:
        commits = await _safe(history.commits_between(default_branch, newrev), "commits_between")
    if not commits:
        commits = await _safe(history.commits_from(newrev), "commits_from")
    return commits


async def _safe(query: Awaitable[list[Commit]], name: str) -> list[Commit]:
    try:
        return await query
    except HistoryLookupError as exc:
        logger.warning("history_lookup_failed", query=name, error=str(exc))
        return []
