"""Classification of a single ref update received from a push.

A push reports ``oldrev newrev ref`` per updated ref. The blank revision
(forty zeros) stands for "did not exist" on the old side and "was deleted"
on the new side.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

BLANK_SHA = "0" * 40
BRANCH_PREFIX = "refs/heads/"
TAG_PREFIX = "refs/tags/"


class RefChangeKind(enum.Enum):
    """What a ref update did."""

    BRANCH_CREATED = "branch_created"
    BRANCH_REMOVED = "branch_removed"
    BRANCH_UPDATED = "branch_updated"
    NON_BRANCH_REF = "non_branch_ref"


@dataclass(frozen=True)
class RefChange:
    """Result of classifying a ref update."""

    kind: RefChangeKind
    branch_name: str | None = None
    is_default_branch: bool = False

    @property
    def is_branch(self) -> bool:
        return self.kind is not RefChangeKind.NON_BRANCH_REF


def branch_name(ref: str) -> str | None:
    """Return the branch name for a ``refs/heads/`` ref, else None."""
    if not ref.startswith(BRANCH_PREFIX):
        return None
    return ref[len(BRANCH_PREFIX):]


def classify(oldrev: str, newrev: str, ref: str, default_branch: str | None) -> RefChange:
    """Classify a ref update.

    ``default_branch`` is the project's current default branch name, or None
    when the repository is still empty. In that case a newly created branch
    is reported as the default branch, since it becomes the default pointer.
    """
    name = branch_name(ref)
    if name is None:
        return RefChange(RefChangeKind.NON_BRANCH_REF)

    if oldrev == BLANK_SHA:
        kind = RefChangeKind.BRANCH_CREATED
    elif newrev == BLANK_SHA:
        kind = RefChangeKind.BRANCH_REMOVED
    else:
        kind = RefChangeKind.BRANCH_UPDATED

    if default_branch is None:
        is_default = kind is RefChangeKind.BRANCH_CREATED
    else:
        is_default = name == default_branch

    return RefChange(kind, branch_name=name, is_default_branch=is_default)
