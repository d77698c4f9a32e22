"""gpat CLI — sync a linear git history with a directory of timestamped patches."""

import sys

import click
from git import GitCommandError
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from gpat import __version__
from gpat.config import load_settings
from gpat.errors import GpatError
from gpat.utils.logging_config import configure_logging, get_logger

console = Console()
log = get_logger("gpat.cli")


@click.group()
@click.version_option(version=__version__)
@click.option("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR (env: GPAT_LOG_LEVEL)")
@click.option("--json-logs/--console-logs", default=None, help="Log format (env: GPAT_JSON_LOGS)")
@click.option("--branch", default=None, help="Branch moved after import (env: GPAT_BRANCH)")
@click.pass_context
def main(ctx: click.Context, log_level: str | None, json_logs: bool | None, branch: str | None):
    """gpat — keep a git commit chain and a patch archive in sync.

    A patch archive is a directory of <timestamp>.patch files, one per
    commit, named by commit time. Only linear histories are supported.
    """
    try:
        settings = load_settings(log_level=log_level, json_logs=json_logs, branch=branch)
    except ValidationError as e:
        raise click.UsageError(str(e))
    configure_logging(settings.log_level, settings.json_logs)
    ctx.obj = settings


def _engine(ctx: click.Context):
    from gpat.sync.engine import SyncEngine

    return SyncEngine(settings=ctx.obj, log=log)


def _run(action, *args):
    """Run an engine operation, turning any violation into exit status 1."""
    try:
        report = action(*args)
    except (GpatError, GitCommandError, OSError) as e:
        log.error("sync_failed", error=str(e), kind=type(e).__name__)
        console.print(f"[red]FAIL[/] {type(e).__name__}: {escape(str(e))}")
        sys.exit(1)

    console.print(f"[green]OK[/] {report.direction.value}: {report.summary()}")
    return report


# ── Sync ─────────────────────────────────────────────────────────────


@main.command()
@click.argument("source")
@click.argument("destination")
@click.pass_context
def sync(ctx: click.Context, source: str, destination: str):
    """Sync SOURCE into DESTINATION, direction inferred from suffixes.

    A path ending in .git is a repository, one ending in .gpat is a patch
    archive: `gpat sync repo.git out.gpat` exports, `gpat sync in.gpat
    repo.git` imports.
    """
    from gpat.sync.engine import infer_direction

    try:
        direction = infer_direction(source, destination, ctx.obj)
    except GpatError as e:
        console.print(f"[red]FAIL[/] {escape(str(e))}")
        sys.exit(1)

    console.print(f"\n[bold blue]gpat[/] — {direction.value}: {source} -> {destination}\n")
    _run(_engine(ctx).sync, source, destination)


@main.command(name="export")
@click.argument("repo_path")
@click.argument("archive_path")
@click.pass_context
def export_cmd(ctx: click.Context, repo_path: str, archive_path: str):
    """Write a patch per new commit of REPO_PATH into ARCHIVE_PATH."""
    _run(_engine(ctx).export, repo_path, archive_path)


@main.command(name="import")
@click.argument("archive_path")
@click.argument("repo_path")
@click.pass_context
def import_cmd(ctx: click.Context, archive_path: str, repo_path: str):
    """Commit each new patch of ARCHIVE_PATH onto REPO_PATH (created if missing)."""
    report = _run(_engine(ctx).import_, archive_path, repo_path)
    if report.branch_updated:
        console.print(f"  {ctx.obj.branch} -> {report.head}")


# ── Check ────────────────────────────────────────────────────────────


@main.command()
@click.argument("repo_path")
@click.argument("archive_path")
@click.pass_context
def check(ctx: click.Context, repo_path: str, archive_path: str):
    """Verify REPO_PATH and ARCHIVE_PATH hold exactly the same history.

    Every patch is recomputed and compared byte for byte. Nothing is
    written; an entry missing on either side is a failure.
    """
    _run(_engine(ctx).check, repo_path, archive_path)


# ── Reconstruct ──────────────────────────────────────────────────────


@main.command()
@click.argument("archive_path")
@click.argument("repo_path")
@click.pass_context
def reconstruct(ctx: click.Context, archive_path: str, repo_path: str):
    """Rebuild a bare repository at REPO_PATH (must be missing or empty)."""
    report = _run(_engine(ctx).reconstruct, archive_path, repo_path)
    if report.branch_updated:
        console.print(f"  {ctx.obj.branch} -> {report.head}")


# ── Archive listing ──────────────────────────────────────────────────


@main.command(name="ls")
@click.argument("archive_path")
def list_entries(archive_path: str):
    """List the entries of a patch archive in timestamp order."""
    from datetime import datetime, timezone

    from gpat.sync.archive import PatchArchive

    try:
        entries = PatchArchive(archive_path).entries(create=False)
    except (GpatError, OSError) as e:
        console.print(f"[red]FAIL[/] {type(e).__name__}: {escape(str(e))}")
        sys.exit(1)

    if not entries:
        console.print("[yellow]Archive is empty.[/]")
        return

    table = Table(title=f"Patch archive ({len(entries)} entries)")
    table.add_column("Timestamp", justify="right", style="cyan")
    table.add_column("Date (UTC)")
    table.add_column("Bytes", justify="right", style="green")

    for entry in entries:
        try:
            date = datetime.fromtimestamp(entry.timestamp, tz=timezone.utc).isoformat()
        except (OverflowError, OSError, ValueError):
            date = "-"
        table.add_row(str(entry.timestamp), date, str(entry.size))

    console.print(table)


if __name__ == "__main__":
    main()
