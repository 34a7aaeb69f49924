"""Tests for ref update classification."""

import pytest

from pushhooks.services.ref_change import (
    BLANK_SHA,
    RefChange,
    RefChangeKind,
    branch_name,
    classify,
)

OLD = "a" * 40
NEW = "b" * 40


def test_blank_oldrev_creates_branch() -> None:
    change = classify(BLANK_SHA, NEW, "refs/heads/feature", "master")

    assert change.kind is RefChangeKind.BRANCH_CREATED
    assert change.branch_name == "feature"
    assert change.is_default_branch is False


def test_blank_newrev_removes_branch() -> None:
    change = classify(OLD, BLANK_SHA, "refs/heads/feature", "master")

    assert change.kind is RefChangeKind.BRANCH_REMOVED


def test_two_revisions_update_branch() -> None:
    change = classify(OLD, NEW, "refs/heads/master", "master")

    assert change == RefChange(
        RefChangeKind.BRANCH_UPDATED, branch_name="master", is_default_branch=True
    )


@pytest.mark.parametrize(
    ("oldrev", "newrev"),
    [(BLANK_SHA, NEW), (OLD, BLANK_SHA), (OLD, NEW), (NEW, NEW)],
)
def test_tag_refs_are_never_branches(oldrev: str, newrev: str) -> None:
    """Non-branch refs classify the same regardless of revisions."""
    change = classify(oldrev, newrev, "refs/tags/v1.0.0", "master")

    assert change.kind is RefChangeKind.NON_BRANCH_REF
    assert change.branch_name is None
    assert change.is_default_branch is False
    assert change.is_branch is False


def test_other_ref_namespaces_are_not_branches() -> None:
    change = classify(OLD, NEW, "refs/merge-requests/3/head", "master")

    assert change.kind is RefChangeKind.NON_BRANCH_REF


def test_default_branch_flag_compares_branch_name() -> None:
    assert classify(OLD, NEW, "refs/heads/master", "master").is_default_branch is True
    assert classify(OLD, NEW, "refs/heads/masterful", "master").is_default_branch is False
    assert classify(OLD, NEW, "refs/heads/dev/master", "master").is_default_branch is False


def test_first_branch_in_empty_repository_is_default() -> None:
    change = classify(BLANK_SHA, NEW, "refs/heads/trunk", None)

    assert change.kind is RefChangeKind.BRANCH_CREATED
    assert change.is_default_branch is True


def test_update_without_default_branch_is_not_default() -> None:
    assert classify(OLD, NEW, "refs/heads/trunk", None).is_default_branch is False


def test_branch_name_keeps_slashes() -> None:
    assert branch_name("refs/heads/feature/login") == "feature/login"
    assert branch_name("refs/tags/v1") is None
