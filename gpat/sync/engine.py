"""Sync engine — keep a commit chain and a patch archive in agreement.

Both directions follow the same shape:

1. Validate both sides (chain linearity, archive entry names).
2. Walk the chain and the archive in lockstep over their common prefix and
   require agreement at every position.
3. Extend the shorter side with what the longer side has beyond the prefix.
4. Finalize (report counts; on import, move the branch).

Any violation raises and aborts the run. Entries completed before the
violation stay in place; they always form a valid prefix, so re-running the
same command resumes the work.
"""

from __future__ import annotations

from pathlib import Path

from git import Actor

from gpat.config import GpatSettings
from gpat.errors import (
    ArchiveAheadOfChain,
    ChainAheadOfArchive,
    ContentDrift,
    RepositoryError,
    TimeOrderingMismatch,
    UnknownLocation,
)
from gpat.models import CommitInfo, SyncDirection, SyncReport
from gpat.sync.archive import PatchArchive
from gpat.sync.codec import DiffCodec
from gpat.sync.history import HistoryReader
from gpat.utils.git_ops import GitStore
from gpat.utils.logging_config import get_logger


def infer_direction(
    source: str | Path,
    destination: str | Path,
    settings: GpatSettings | None = None,
) -> SyncDirection:
    """Pick export or import from the location suffixes.

    ``x.git -> y`` or ``x -> y.gpat`` exports; ``x -> y.git`` or
    ``x.gpat -> y`` imports.

    Raises:
        UnknownLocation: Neither location carries a known suffix.
    """
    settings = settings or GpatSettings()
    src = str(source).rstrip("/\\")
    dst = str(destination).rstrip("/\\")

    if src.endswith(settings.repo_suffix) or dst.endswith(settings.archive_suffix):
        return SyncDirection.EXPORT
    if dst.endswith(settings.repo_suffix) or src.endswith(settings.archive_suffix):
        return SyncDirection.IMPORT
    raise UnknownLocation(
        f"Unknown format: expected a {settings.repo_suffix} and a "
        f"{settings.archive_suffix} location, got {source!r} and {destination!r}"
    )


class SyncEngine:
    """Runs one synchronization between a git repository and a patch archive.

    Args:
        settings: Runtime settings (identity, branch, suffixes).
        log: Diagnostics sink; receives one event per entry and the final
            counts. Defaults to this module's structlog logger.
    """

    def __init__(self, settings: GpatSettings | None = None, log=None):
        self.settings = settings or GpatSettings()
        self.log = log if log is not None else get_logger(__name__)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def sync(self, source: str | Path, destination: str | Path) -> SyncReport:
        """Export or import depending on the location suffixes."""
        direction = infer_direction(source, destination, self.settings)
        if direction == SyncDirection.EXPORT:
            return self.export(source, destination)
        return self.import_(source, destination)

    def export(self, repo_path: str | Path, archive_path: str | Path) -> SyncReport:
        """Write a patch for every commit the archive does not have yet.

        Raises:
            TopologyError: The chain is not linear.
            TimeOrderingMismatch: The chain was rewritten since the last export.
            ContentDrift: A stored patch differs from the recomputed one.
            ArchiveAheadOfChain: The archive has entries past the chain's end.
        """
        return self._chain_to_archive(repo_path, archive_path, SyncDirection.EXPORT)

    def check(self, repo_path: str | Path, archive_path: str | Path) -> SyncReport:
        """Verify that chain and archive are fully in sync without writing anything.

        Raises the same errors as :meth:`export`, plus ``ChainAheadOfArchive``
        where export would have written a new patch.
        """
        return self._chain_to_archive(repo_path, archive_path, SyncDirection.CHECK)

    def import_(
        self,
        archive_path: str | Path,
        repo_path: str | Path,
        fresh: bool = False,
    ) -> SyncReport:
        """Commit every archive entry the chain does not have yet.

        The repository is created (bare) when missing or empty. Commits that
        already exist are matched by timestamp only; their content is not
        re-diffed against the archive (``check`` does that).

        Args:
            archive_path: Source patch archive.
            repo_path: Destination repository.
            fresh: Require the destination to be missing or empty.

        Raises:
            TopologyError: The destination chain is not linear.
            TimeOrderingMismatch: A destination commit's time differs from
                the archive key at the same position.
            ChainAheadOfArchive: The destination has commits past the
                archive's end.
        """
        log = self.log.bind(
            direction=SyncDirection.IMPORT.value,
            source=str(archive_path),
            destination=str(repo_path),
        )
        report = SyncReport(
            direction=SyncDirection.IMPORT,
            source=str(archive_path),
            destination=str(repo_path),
        )

        archive = PatchArchive(archive_path)
        timestamps = archive.list()
        author = Actor(self.settings.author_name, self.settings.author_email)

        with GitStore.open(repo_path, create=True, author=author) as store:
            if fresh and not store.created:
                raise RepositoryError(f"Dst non-empty: {repo_path}")
            if store.created:
                log.info("repository_initialized", path=str(repo_path))

            existing = HistoryReader(store).commits()
            codec = DiffCodec(store)
            last: CommitInfo | None = None

            # Lockstep over the commits already in the destination.
            position = 0
            for commit in existing:
                if position >= len(timestamps):
                    raise ChainAheadOfArchive(commit.sha, commit.timestamp)
                expected = timestamps[position]
                position += 1
                if commit.timestamp != expected:
                    raise TimeOrderingMismatch(position, expected, commit.timestamp, commit.sha)
                log.debug("epoch_match", timestamp=expected, commit=commit.sha)
                report.skipped += 1
                last = commit

            # Extend the chain with the rest of the archive.
            for timestamp in timestamps[position:]:
                diff = codec.decode(archive.read(timestamp))
                tree_sha = codec.apply(diff, last.tree_sha if last else None)
                last = store.create_commit(tree_sha, last.sha if last else None, timestamp)
                report.committed += 1
                log.info("commit_created", timestamp=timestamp, commit=last.sha)

            if report.committed:
                store.point_branch(self.settings.branch, last.sha)
                report.head = last.sha
                report.branch_updated = True
                log.info("branch_updated", branch=self.settings.branch, commit=last.sha)
            else:
                log.info("nothing_to_update")

        log.info("sync_finished", skipped=report.skipped, committed=report.committed)
        return report

    def reconstruct(self, archive_path: str | Path, repo_path: str | Path) -> SyncReport:
        """Rebuild a repository from an archive into a missing or empty location."""
        return self.import_(archive_path, repo_path, fresh=True)

    # ------------------------------------------------------------------
    # Export / check
    # ------------------------------------------------------------------

    def _chain_to_archive(
        self,
        repo_path: str | Path,
        archive_path: str | Path,
        direction: SyncDirection,
    ) -> SyncReport:
        log = self.log.bind(
            direction=direction.value,
            source=str(repo_path),
            destination=str(archive_path),
        )
        report = SyncReport(
            direction=direction,
            source=str(repo_path),
            destination=str(archive_path),
        )
        archive = PatchArchive(archive_path)

        with GitStore.open(repo_path, create=False) as store:
            commits = HistoryReader(store).commits()
            existing = archive.list(create=direction != SyncDirection.CHECK)
            codec = DiffCodec(store)
            previous_tree: str | None = None
            position = 0

            for commit in commits:
                position += 1
                parent_tree, previous_tree = previous_tree, commit.tree_sha

                if position <= len(existing):
                    expected = existing[position - 1]
                    if commit.timestamp != expected:
                        raise TimeOrderingMismatch(position, expected, commit.timestamp, commit.sha)
                    patch = codec.encode(parent_tree, commit.tree_sha)
                    if archive.read(expected) != patch:
                        raise ContentDrift(expected, commit.sha)
                    report.verified += 1
                    log.debug("patch_verified", timestamp=expected, commit=commit.sha)
                    continue

                if direction == SyncDirection.CHECK:
                    raise ChainAheadOfArchive(commit.sha, commit.timestamp)

                patch = codec.encode(parent_tree, commit.tree_sha)
                archive.write(commit.timestamp, patch)
                report.written += 1
                report.written_timestamps.append(commit.timestamp)
                log.info(
                    "patch_written",
                    timestamp=commit.timestamp,
                    commit=commit.sha,
                    size=len(patch),
                )

            if position < len(existing):
                raise ArchiveAheadOfChain(existing[position:])

        log.info("sync_finished", verified=report.verified, written=report.written)
        return report
