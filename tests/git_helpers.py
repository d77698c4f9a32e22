"""Shared helpers: build small git histories with chosen commit times."""

from pathlib import Path

from git import Actor, Repo

AUTHOR = Actor("Test Author", "author@example.com")


def stage_step(repo: Repo, step: int) -> None:
    """Write the working tree for ``step``; content depends only on ``step``.

    Each step appends to a text file, rewrites a binary blob, adds a note
    and removes the note from two steps earlier.
    """
    root = Path(repo.working_tree_dir)
    files = {
        "log.txt": "".join(f"line {n}\n" for n in range(step + 1)).encode(),
        f"notes/{step}.md": f"# step {step}\n".encode(),
        "data/blob.bin": bytes((n * (step + 1)) % 256 for n in range(512)),
    }
    for rel, data in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    repo.index.add(list(files))
    stale = f"notes/{step - 2}.md"
    if step >= 2 and (root / stale).exists():
        repo.index.remove([stale], working_tree=True)


def commit_at(repo: Repo, timestamp: int, message: str = "", **kwargs):
    date = f"{timestamp} +0000"
    return repo.index.commit(
        message or f"commit at {timestamp}",
        author=AUTHOR,
        committer=AUTHOR,
        author_date=date,
        commit_date=date,
        **kwargs,
    )


def make_chain(path: Path, timestamps: list[int], empty_steps: tuple[int, ...] = ()) -> Repo:
    """Create a working repository with one commit per timestamp.

    Commit ``i`` has the same tree in every repository built by this helper,
    so two chains sharing a prefix of timestamps share those trees.
    """
    repo = Repo.init(path)
    for step, timestamp in enumerate(timestamps):
        if step not in empty_steps:
            stage_step(repo, step)
        commit_at(repo, timestamp)
    return repo
