"""Patch archive — a directory of ``<timestamp>.patch`` files.

The directory is the whole state: there is no index file. Entries are keyed
by the integer in their name and ordered numerically, never by filesystem
order. Anything in the directory that is not a well-formed patch file is an
error rather than something to skip.
"""

from __future__ import annotations

import re
from pathlib import Path

from gpat.errors import DuplicateTimestamp, MalformedArchiveEntry, PatchNotFound
from gpat.models import PatchEntry

PATCH_SUFFIX = ".patch"

_NAME_RE = re.compile(r"^(-?[0-9]+)" + re.escape(PATCH_SUFFIX) + r"$")


def parse_entry_name(name: str) -> int:
    """Return the timestamp encoded in an archive file name.

    Raises:
        MalformedArchiveEntry: ``name`` is not ``<integer>.patch``.
    """
    match = _NAME_RE.match(name)
    if not match:
        raise MalformedArchiveEntry(f"Archive contains invalid file {name!r}", name)
    return int(match.group(1))


def entry_name(timestamp: int) -> str:
    return f"{timestamp}{PATCH_SUFFIX}"


class PatchArchive:
    """Timestamp-keyed patch files stored in one directory."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def ensure(self) -> None:
        """Create the archive directory if it does not exist yet."""
        if self.root.exists() and not self.root.is_dir():
            raise MalformedArchiveEntry(f"Archive path is not a directory: {self.root}")
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, timestamp: int) -> Path:
        return self.root / entry_name(timestamp)

    def __contains__(self, timestamp: int) -> bool:
        return self.path_for(timestamp).is_file()

    def entries(self, create: bool = True) -> list[PatchEntry]:
        """Validate the directory and return its entries in timestamp order.

        With ``create=False`` a missing directory reads as an empty archive
        and is left missing.

        Raises:
            MalformedArchiveEntry: An entry is not a regular file or is not
                named ``<integer>.patch``.
            DuplicateTimestamp: Two names denote the same integer
                (``7.patch`` and ``007.patch``).
        """
        if create:
            self.ensure()
        elif not self.root.exists():
            return []
        elif not self.root.is_dir():
            raise MalformedArchiveEntry(f"Archive path is not a directory: {self.root}")
        seen: dict[int, str] = {}
        entries: list[PatchEntry] = []

        for child in self.root.iterdir():
            if child.is_symlink() or not child.is_file():
                raise MalformedArchiveEntry(
                    f"Archive contains non-regular file {child.name!r}", child.name
                )
            timestamp = parse_entry_name(child.name)
            if timestamp in seen:
                raise DuplicateTimestamp(
                    timestamp, f"{seen[timestamp]!r} and {child.name!r}"
                )
            seen[timestamp] = child.name
            entries.append(PatchEntry(timestamp=timestamp, path=child, size=child.stat().st_size))

        entries.sort(key=lambda e: e.timestamp)
        return entries

    def list(self, create: bool = True) -> list[int]:
        """Return the sorted timestamps present in the archive."""
        return [entry.timestamp for entry in self.entries(create=create)]

    def read(self, timestamp: int) -> bytes:
        """Return the stored bytes for ``timestamp`` exactly as written."""
        path = self.path_for(timestamp)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise PatchNotFound(timestamp) from None

    def write(self, timestamp: int, data: bytes) -> Path:
        """Store ``data`` under ``timestamp``; existing entries are never replaced.

        A failed write removes what it created, so an interruption cannot leave
        a truncated entry behind.

        Raises:
            DuplicateTimestamp: An entry for ``timestamp`` already exists.
        """
        self.ensure()
        path = self.path_for(timestamp)
        try:
            f = open(path, "xb")
        except FileExistsError:
            raise DuplicateTimestamp(timestamp, f"{path.name} already exists") from None

        try:
            with f:
                f.write(data)
        except BaseException:
            path.unlink(missing_ok=True)
            raise
        return path
