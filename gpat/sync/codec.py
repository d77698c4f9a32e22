"""Diff codec — tree pairs to patch bytes and back.

Re-encoding the tree obtained by applying ``decode(encode(a, b))`` onto ``a``
must give back the same bytes; export verification relies on it.
"""

from __future__ import annotations

from dataclasses import dataclass

from gpat.errors import MalformedPatch
from gpat.utils.git_ops import GitStore

DIFF_HEADER = b"diff --git "


@dataclass(frozen=True)
class AppliableDiff:
    """Decoded patch ready to be applied to a staging index."""

    data: bytes

    @property
    def is_empty(self) -> bool:
        # A commit that changes nothing encodes to zero bytes.
        return not self.data


class DiffCodec:
    def __init__(self, store: GitStore):
        self.store = store

    def encode(self, previous_tree: str | None, current_tree: str) -> bytes:
        """Full patch from ``previous_tree`` (None = empty tree) to ``current_tree``."""
        return self.store.diff_trees(previous_tree, current_tree)

    def decode(self, data: bytes) -> AppliableDiff:
        if data and not data.startswith(DIFF_HEADER):
            raise MalformedPatch(
                f"Not a git patch (starts with {data[:20]!r}, expected {DIFF_HEADER!r})"
            )
        return AppliableDiff(data=data)

    def apply(self, diff: AppliableDiff, base_tree: str | None) -> str:
        """Apply ``diff`` on ``base_tree`` and return the resulting tree sha."""
        return self.store.apply_to_tree(base_tree, diff.data)
