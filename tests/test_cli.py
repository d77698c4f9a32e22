"""Tests for the command line surface."""

from click.testing import CliRunner
from git import Repo

from gpat import __version__
from gpat.cli import main

from git_helpers import make_chain


def test_version():
    result = CliRunner().invoke(main, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_sync_exports_then_imports(tmp_path):
    make_chain(tmp_path / "src.git", [10, 20, 30])
    runner = CliRunner()

    exported = runner.invoke(main, ["sync", str(tmp_path / "src.git"), str(tmp_path / "h.gpat")])
    assert exported.exit_code == 0, exported.output
    assert "3 written" in exported.output

    imported = runner.invoke(main, ["sync", str(tmp_path / "h.gpat"), str(tmp_path / "dst.git")])
    assert imported.exit_code == 0, imported.output
    assert "3 committed" in imported.output
    assert Repo(tmp_path / "dst.git").head.commit.committed_date == 30


def test_sync_unknown_format_fails(tmp_path):
    result = CliRunner().invoke(main, ["sync", str(tmp_path / "a"), str(tmp_path / "b")])
    assert result.exit_code == 1
    assert "Unknown format" in result.output


def test_check_fails_on_drift(tmp_path):
    make_chain(tmp_path / "src.git", [10, 20])
    runner = CliRunner()
    runner.invoke(main, ["export", str(tmp_path / "src.git"), str(tmp_path / "h.gpat")])
    (tmp_path / "h.gpat" / "20.patch").write_bytes(b"diff --git a/x b/x\n")

    result = runner.invoke(main, ["check", str(tmp_path / "src.git"), str(tmp_path / "h.gpat")])

    assert result.exit_code == 1
    assert "ContentDrift" in result.output


def test_import_reports_branch(tmp_path):
    make_chain(tmp_path / "src.git", [10])
    runner = CliRunner()
    runner.invoke(main, ["export", str(tmp_path / "src.git"), str(tmp_path / "h.gpat")])

    result = runner.invoke(
        main, ["--branch", "main", "import", str(tmp_path / "h.gpat"), str(tmp_path / "dst.git")]
    )

    assert result.exit_code == 0, result.output
    assert "main ->" in result.output
    assert Repo(tmp_path / "dst.git").head.reference.name == "main"


def test_reconstruct_refuses_non_empty_destination(tmp_path):
    make_chain(tmp_path / "src.git", [10])
    runner = CliRunner()
    runner.invoke(main, ["export", str(tmp_path / "src.git"), str(tmp_path / "h.gpat")])

    result = runner.invoke(main, ["reconstruct", str(tmp_path / "h.gpat"), str(tmp_path / "src.git")])

    assert result.exit_code == 1
    assert "RepositoryError" in result.output


def test_ls_lists_entries(tmp_path):
    make_chain(tmp_path / "src.git", [1000, 2000])
    runner = CliRunner()
    runner.invoke(main, ["export", str(tmp_path / "src.git"), str(tmp_path / "h.gpat")])

    result = runner.invoke(main, ["ls", str(tmp_path / "h.gpat")])

    assert result.exit_code == 0
    assert "1000" in result.output
    assert "2000" in result.output


def test_ls_rejects_malformed_archive(tmp_path):
    (tmp_path / "h.gpat").mkdir()
    (tmp_path / "h.gpat" / "notes.txt").write_text("hi")

    result = CliRunner().invoke(main, ["ls", str(tmp_path / "h.gpat")])

    assert result.exit_code == 1
    assert "MalformedArchiveEntry" in result.output


def test_invalid_log_level_is_usage_error(tmp_path):
    result = CliRunner().invoke(main, ["--log-level", "LOUD", "ls", str(tmp_path)])
    assert result.exit_code == 2
