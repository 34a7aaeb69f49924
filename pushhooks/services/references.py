"""Extract issue references from commit messages."""

from __future__ import annotations

from dataclasses import dataclass

from pushhooks.services.history import Commit
from pushhooks.services.trackers import IssueTracker


@dataclass(frozen=True)
class IssueReference:
    """One issue token found in one commit message."""

    issue_id: str
    commit_id: str
    is_closing: bool = False


def scan_commit(commit: Commit, tracker: IssueTracker) -> list[IssueReference]:
    """Return the issue references in ``commit``'s message.

    Tokens caught by the tracker's closing pattern come first and are marked
    closing; every other mentioned token follows as a plain mention. Each
    token is reported once. Nothing is resolved here, so unknown issues are
    dropped later by the tracker.
    """
    closing = tracker.match_closing(commit.message)
    references = [IssueReference(token, commit.id, is_closing=True) for token in closing]
    references.extend(
        IssueReference(token, commit.id)
        for token in tracker.match_references(commit.message)
        if token not in closing
    )
    return references
