"""Repository history access with protocol-based swappable implementations.

Production code uses ``GitHistoryStore`` which shells out to ``git log`` on
the project's bare repository, wrapped in ``asyncio.to_thread`` so it never
blocks the event loop. Tests use ``InMemoryHistoryStore`` which answers range
queries from canned commit lists.

Both implementations return commits oldest first.
"""

from __future__ import annotations

import asyncio
import subprocess
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Protocol

import structlog

from pushhooks.services.ref_change import BLANK_SHA

logger = structlog.get_logger()

# Field and record separators for ``git log --format``.
_FS = "\x1f"
_RS = "\x1e"
_LOG_FORMAT = f"%H{_FS}%P{_FS}%an{_FS}%ae{_FS}%aI{_FS}%cI{_FS}%B{_RS}"


class HistoryLookupError(Exception):
    """The history store could not answer a revision query."""


@dataclass(frozen=True)
class Commit:
    """A commit as read from repository history."""

    id: str
    message: str
    author_name: str
    author_email: str
    authored_date: datetime
    parent_ids: tuple[str, ...] = field(default_factory=tuple)
    # None when the source only knows the author date.
    committed_date: datetime | None = None

    @property
    def short_id(self) -> str:
        return self.id[:8]

    @property
    def date(self) -> datetime:
        """Date the commit landed, falling back to the author date."""
        return self.committed_date or self.authored_date

    @property
    def title(self) -> str:
        """First line of the commit message."""
        return self.message.strip().split("\n", 1)[0]


class HistoryStore(Protocol):
    """Protocol for revision-range queries against a repository."""

    async def commits_between(self, from_rev: str, to_rev: str) -> list[Commit]:
        """Return commits reachable from ``to_rev`` but not from ``from_rev``."""
        ...

    async def commits_from(self, rev: str) -> list[Commit]:
        """Return every commit reachable from ``rev``."""
        ...


class GitHistoryStore:
    """Reads history from a bare repository with the ``git`` executable."""

    def __init__(
        self, repo_path: str | Path, *, git_bin: str = "git", timeout: float = 30.0
    ) -> None:
        self.repo_path = Path(repo_path)
        self.git_bin = git_bin
        self.timeout = timeout

    async def commits_between(self, from_rev: str, to_rev: str) -> list[Commit]:
        """Return ``from_rev..to_rev`` oldest first.

        A range starting at the blank revision has no lower boundary and is
        always empty.
        """
        if from_rev == BLANK_SHA:
            return []
        _check_rev(from_rev)
        _check_rev(to_rev)
        return await self._log(f"{from_rev}..{to_rev}")

    async def commits_from(self, rev: str) -> list[Commit]:
        """Return the full ancestry of ``rev`` oldest first."""
        _check_rev(rev)
        return await self._log(rev)

    async def _log(self, revision_range: str) -> list[Commit]:
        output = await asyncio.to_thread(
            self._run, "log", "--reverse", f"--format={_LOG_FORMAT}", revision_range, "--"
        )
        return parse_log(output)

    def _run(self, *args: str) -> str:
        cmd = [self.git_bin, f"--git-dir={self.repo_path}", *args]
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise HistoryLookupError(f"git {args[0]} failed: {exc}") from exc

        if result.returncode != 0:
            logger.debug(
                "git_command_failed",
                repo=str(self.repo_path),
                args=args,
                returncode=result.returncode,
                stderr=result.stderr.strip(),
            )
            raise HistoryLookupError(result.stderr.strip() or f"git exited {result.returncode}")
        return result.stdout


class InMemoryHistoryStore:
    """Test double answering range queries from canned commit lists.

    ``ranges`` maps ``(from_rev, to_rev)`` to the commits in that range and
    ``ancestry`` maps a revision to its full history. Unknown keys answer
    with an empty list. Every query is recorded in ``calls``.
    """

    def __init__(
        self,
        ranges: dict[tuple[str, str], list[Commit]] | None = None,
        ancestry: dict[str, list[Commit]] | None = None,
    ) -> None:
        self.ranges = ranges or {}
        self.ancestry = ancestry or {}
        self.calls: list[tuple] = []

    async def commits_between(self, from_rev: str, to_rev: str) -> list[Commit]:
        self.calls.append(("commits_between", from_rev, to_rev))
        return list(self.ranges.get((from_rev, to_rev), []))

    async def commits_from(self, rev: str) -> list[Commit]:
        self.calls.append(("commits_from", rev))
        return list(self.ancestry.get(rev, []))


def parse_log(output: str) -> list[Commit]:
    """Parse ``git log`` output produced with ``_LOG_FORMAT``."""
    commits: list[Commit] = []
    for record in output.split(_RS):
        record = record.strip("\n")
        if not record:
            continue
        sha, parents, name, email, authored, committed, message = record.split(_FS, 6)
        commits.append(
            Commit(
                id=sha,
                message=message.rstrip("\n"),
                author_name=name,
                author_email=email,
                authored_date=datetime.fromisoformat(authored),
                parent_ids=tuple(parents.split()),
                committed_date=datetime.fromisoformat(committed),
            )
        )
    return commits


def _check_rev(rev: str) -> None:
    # Refuse anything git could read as an option.
    if not rev or rev.startswith("-"):
        raise HistoryLookupError(f"invalid revision: {rev!r}")
