"""Data models — commits, archive entries, and run reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class SyncDirection(str, Enum):
    EXPORT = "export"  # chain -> archive
    IMPORT = "import"  # archive -> chain
    CHECK = "check"  # verify both, write nothing


@dataclass(frozen=True)
class CommitInfo:
    """A commit as seen by the sync protocol: identity, time, links, tree."""

    sha: str
    timestamp: int  # committer time, seconds
    parents: tuple[str, ...] = ()
    tree_sha: str = ""

    @property
    def parent(self) -> str | None:
        return self.parents[0] if self.parents else None


@dataclass(frozen=True)
class PatchEntry:
    """One file of the patch archive."""

    timestamp: int
    path: Path
    size: int = 0


@dataclass
class SyncReport:
    """Counters reported at the end of a run."""

    direction: SyncDirection
    source: str = ""
    destination: str = ""

    verified: int = 0  # export/check: entries compared byte-for-byte
    skipped: int = 0  # import: commits already present
    written: int = 0  # export: patch files created
    committed: int = 0  # import: commits created

    head: str = ""
    branch_updated: bool = False
    written_timestamps: list[int] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.written > 0 or self.committed > 0

    def summary(self) -> str:
        if self.direction == SyncDirection.EXPORT:
            return f"{self.verified} verified, {self.written} written"
        if self.direction == SyncDirection.IMPORT:
            if not self.committed:
                return f"{self.skipped} skipped, nothing to update"
            return f"{self.skipped} skipped, {self.committed} committed"
        return f"{self.verified} verified, in sync"
