"""Error taxonomy for gpat.

Every violation is fatal: nothing in the package catches these to retry or
recover. The CLI turns them into a diagnostic and a non-zero exit.
"""

from __future__ import annotations


class GpatError(Exception):
    """Base class for every invariant violation raised by gpat."""


class RepositoryError(GpatError):
    """A repository location cannot be used for the requested operation."""


class UnknownLocation(GpatError):
    """Neither argument carries a recognised repository/archive suffix."""


class TopologyError(GpatError):
    """The commit chain is not linear (merge or broken parent link)."""

    def __init__(self, message: str, commit_sha: str = ""):
        super().__init__(message)
        self.commit_sha = commit_sha


class MalformedArchiveEntry(GpatError):
    """An archive directory entry is not a ``<integer>.patch`` regular file."""

    def __init__(self, message: str, entry: str = ""):
        super().__init__(message)
        self.entry = entry


class MalformedPatch(GpatError):
    """Stored patch bytes are not a git diff."""


class PatchNotFound(GpatError):
    """No archive entry exists for the requested timestamp."""

    def __init__(self, timestamp: int):
        super().__init__(f"No patch stored for timestamp {timestamp}")
        self.timestamp = timestamp


class DuplicateTimestamp(GpatError):
    """Two entries claim the same timestamp."""

    def __init__(self, timestamp: int, detail: str = ""):
        message = f"Duplicate timestamp {timestamp}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.timestamp = timestamp


class TimeOrderingMismatch(GpatError):
    """Lockstep walk found different timestamps at the same position."""

    def __init__(
        self,
        position: int,
        expected: int,
        actual: int,
        commit_sha: str = "",
        message: str | None = None,
    ):
        if message is None:
            message = (
                f"Time mismatch at position {position}: "
                f"archive has {expected}, chain has {actual}"
            )
        if commit_sha:
            message = f"{message} (commit {commit_sha})"
        super().__init__(message)
        self.position = position
        self.expected = expected
        self.actual = actual
        self.commit_sha = commit_sha


class ContentDrift(GpatError):
    """Stored patch bytes differ from the bytes recomputed from the chain."""

    def __init__(self, timestamp: int, commit_sha: str = ""):
        super().__init__(
            f"Check failed for {timestamp}.patch (commit {commit_sha}): "
            "stored bytes differ from recomputed diff, maybe dup timestamp?"
        )
        self.timestamp = timestamp
        self.commit_sha = commit_sha


class ArchiveAheadOfChain(GpatError):
    """The archive holds entries the chain cannot account for."""

    def __init__(self, remaining: list[int]):
        super().__init__(
            f"Patch archive is newer than the chain: {len(remaining)} unmatched "
            f"entr{'y' if len(remaining) == 1 else 'ies'} starting at {remaining[0]}"
        )
        self.remaining = remaining


class ChainAheadOfArchive(GpatError):
    """The chain holds commits the archive cannot account for."""

    def __init__(self, commit_sha: str, timestamp: int):
        super().__init__(
            f"Chain is newer than the patch archive: commit {commit_sha} "
            f"at {timestamp} has no archive entry"
        )
        self.commit_sha = commit_sha
        self.timestamp = timestamp
