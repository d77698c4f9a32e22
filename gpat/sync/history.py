"""History reader — a linear commit chain, oldest first."""

from __future__ import annotations

from typing import Iterator

from gpat.errors import DuplicateTimestamp, GpatError, TimeOrderingMismatch, TopologyError
from gpat.models import CommitInfo
from gpat.utils.git_ops import GitStore


class HistoryReader:
    """Walks the commits reachable from HEAD after proving they form a chain."""

    def __init__(self, store: GitStore):
        self.store = store

    def check_linear(self) -> int:
        """Walk the whole history once and reject anything but a single chain.

        Every commit must have at most one parent, that parent must be the
        commit walked immediately before it, and commit times must strictly
        increase along the chain (they become archive keys). A merge anywhere
        in the history is reported in preference to the other violations,
        since it is usually their cause. Returns the chain length.

        Raises:
            TopologyError: A merge commit, or a commit whose parent is not its
                predecessor in the walk.
            DuplicateTimestamp: Two consecutive commits share a commit time.
            TimeOrderingMismatch: A commit is older than its parent.
        """
        previous: CommitInfo | None = None
        first_violation: GpatError | None = None
        count = 0

        for commit in self.store.iter_commits():
            count += 1
            if len(commit.parents) >= 2:
                raise TopologyError(f"Contains merge point: {commit.sha}", commit.sha)
            if first_violation is None:
                first_violation = _link_violation(previous, commit, count)
            previous = commit

        if first_violation is not None:
            raise first_violation
        return count

    def commits(self) -> Iterator[CommitInfo]:
        """Return the chain as a one-shot iterator, oldest first.

        The linearity pass runs eagerly, before the iterator is handed out,
        so callers fail before producing output or mutating anything. An
        empty repository yields nothing.
        """
        self.check_linear()
        return self.store.iter_commits()


def _link_violation(previous: CommitInfo | None, commit: CommitInfo, position: int) -> GpatError | None:
    expected_parent = previous.sha if previous else None
    if commit.parent != expected_parent:
        return TopologyError(
            f"Commit {commit.sha} has parent {commit.parent or '(none)'}, "
            f"expected {expected_parent or '(none)'}",
            commit.sha,
        )
    if previous is None:
        return None
    if commit.timestamp == previous.timestamp:
        return DuplicateTimestamp(
            commit.timestamp,
            f"commits {previous.sha} and {commit.sha} share a commit time",
        )
    if commit.timestamp < previous.timestamp:
        return TimeOrderingMismatch(
            position,
            previous.timestamp,
            commit.timestamp,
            commit.sha,
            message=(
                f"Commit time goes backwards at position {position}: "
                f"{commit.timestamp} follows {previous.timestamp}"
            ),
        )
    return None
