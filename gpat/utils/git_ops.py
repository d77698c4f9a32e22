"""Git operations — open/init repos, walk history, diff, apply, commit.

This is the only module that talks to git. Everything above it works with
commit shas, tree shas, timestamps and patch bytes.
"""

from __future__ import annotations

import re
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

from git import Actor, Commit, InvalidGitRepositoryError, NoSuchPathError, Repo

from gpat.errors import RepositoryError
from gpat.models import CommitInfo

# Well-known id of the empty tree; git resolves it without the object being stored.
EMPTY_TREE_SHA = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"

# GitPython reads dates before 1970 back as 0; the raw header keeps the sign.
_COMMITTER_TIME_RE = re.compile(rb"^committer .*> (-?[0-9]+) [+-][0-9]{4}$", re.MULTILINE)

# Options that pin the diff output so re-encoding the same trees gives the same bytes
# regardless of the user's git config.
DIFF_OPTIONS = (
    "-r",
    "-p",
    "--binary",
    "--full-index",
    "--no-renames",
    "--no-color",
    "--no-ext-diff",
    "--no-textconv",
    "--src-prefix=a/",
    "--dst-prefix=b/",
)


@dataclass
class GitStore:
    """A linear-history view of one git repository.

    Use as a context manager so the underlying ``git.Repo`` releases its
    cat-file processes::

        with GitStore.open("history.git") as store:
            for commit in store.iter_commits():
                ...
    """

    local_path: Path
    repo: Repo
    created: bool = False
    """True when this handle initialized a new bare repository."""

    author: Actor = field(default_factory=lambda: Actor("idfc", "idfc"))
    """Synthetic identity stamped on every commit this store creates."""

    def __enter__(self) -> "GitStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self.repo.close()

    # ------------------------------------------------------------------
    # Opening
    # ------------------------------------------------------------------

    @classmethod
    def open(
        cls,
        repo_path: str | Path,
        create: bool = False,
        author: Actor | None = None,
    ) -> "GitStore":
        """Open a working or bare repository, or initialize a bare one.

        Args:
            repo_path: Repository location.
            create: Initialize a new bare repository when the location is
                missing or an empty directory.
            author: Identity for commits created through this store.

        Raises:
            RepositoryError: The location is not a repository, or it is
                missing/empty and ``create`` is False.
        """
        path = Path(repo_path)
        kwargs = {"author": author} if author is not None else {}

        if path.exists() and not path.is_dir():
            raise RepositoryError(f"Not a directory: {repo_path}")

        if path.is_dir() and any(path.iterdir()):
            try:
                repo = Repo(path)
            except (InvalidGitRepositoryError, NoSuchPathError):
                raise RepositoryError(f"Directory exists but is not a Git repo: {repo_path}")
            return cls(local_path=path, repo=repo, **kwargs)

        if not create:
            raise RepositoryError(f"Empty git folder: {repo_path}")

        repo = Repo.init(path, mkdir=True, bare=True)
        return cls(local_path=path, repo=repo, created=True, **kwargs)

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def is_empty(self) -> bool:
        """True when HEAD does not resolve to any commit yet."""
        return not self.repo.head.is_valid()

    def iter_commits(self) -> Iterator[CommitInfo]:
        """Yield every commit reachable from HEAD, oldest first."""
        if self.is_empty():
            return
        for commit in self.repo.iter_commits("HEAD", date_order=True, reverse=True):
            yield _commit_info(commit)

    def diff_trees(self, old_tree_sha: str | None, new_tree_sha: str) -> bytes:
        """Return the full binary-safe patch between two trees.

        ``old_tree_sha=None`` diffs against the empty tree. The output is
        returned exactly as git wrote it.
        """
        return self.repo.git.diff_tree(
            *DIFF_OPTIONS,
            old_tree_sha or EMPTY_TREE_SHA,
            new_tree_sha,
            stdout_as_string=False,
            strip_newline_in_stdout=False,
        )

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def apply_to_tree(self, base_tree_sha: str | None, patch: bytes) -> str:
        """Apply ``patch`` on top of ``base_tree_sha`` and store the resulting tree.

        A throwaway index file is used as the staging area, so this works on
        bare repositories and never touches a working tree or the real index.
        """
        with tempfile.TemporaryDirectory(prefix="gpat_") as tmpdir:
            env = {"GIT_INDEX_FILE": str(Path(tmpdir) / "index")}
            if base_tree_sha:
                self.repo.git.read_tree(base_tree_sha, env=env)
            else:
                self.repo.git.read_tree("--empty", env=env)

            if patch:
                patch_file = Path(tmpdir) / "change.patch"
                patch_file.write_bytes(patch)
                self.repo.git.apply("--cached", "--whitespace=nowarn", str(patch_file), env=env)

            return self.repo.git.write_tree(env=env).strip()

    def create_commit(self, tree_sha: str, parent_sha: str | None, timestamp: int) -> CommitInfo:
        """Create a commit of ``tree_sha`` dated ``timestamp`` (UTC), without moving HEAD."""
        date = f"{timestamp} +0000"
        parents = [self.repo.commit(parent_sha)] if parent_sha else []
        commit = Commit.create_from_tree(
            self.repo,
            self.repo.tree(tree_sha),
            "",
            parent_commits=parents,
            head=False,
            author=self.author,
            committer=self.author,
            author_date=date,
            commit_date=date,
        )
        return CommitInfo(
            sha=commit.hexsha,
            timestamp=timestamp,
            parents=tuple(p.hexsha for p in parents),
            tree_sha=tree_sha,
        )

    def point_branch(self, name: str, commit_sha: str) -> None:
        """Create or move ``refs/heads/<name>`` to ``commit_sha`` and check it out as HEAD."""
        head = self.repo.create_head(name, commit_sha, force=True)
        self.repo.head.reference = head


def commit_time(commit: Commit) -> int:
    """Committer time of ``commit`` in seconds, negative values included."""
    raw = commit.repo.odb.stream(commit.binsha).read()
    header = raw.split(b"\n\n", 1)[0]
    match = _COMMITTER_TIME_RE.search(header)
    if match is None:
        return commit.committed_date
    return int(match.group(1))


def _commit_info(commit: Commit) -> CommitInfo:
    return CommitInfo(
        sha=commit.hexsha,
        timestamp=commit_time(commit),
        parents=tuple(p.hexsha for p in commit.parents),
        tree_sha=commit.tree.hexsha,
    )
