"""Tests for the db-archiver CLI."""

import asyncio

import pytest

from db_archiver.adapters.sqlite import AsyncSQLiteAdapter
from db_archiver.cli import build_parser, main

from conftest import populate_shop


@pytest.fixture
def config_file(tmp_path):
    """Config with main/scratch/archiver bindings and a local blob store."""
    adapter = AsyncSQLiteAdapter(f"sqlite:///{tmp_path / 'main.db'}")

    async def _setup():
        await populate_shop(adapter)
        await adapter.close()

    asyncio.run(_setup())

    path = tmp_path / "db-archiver.toml"
    path.write_text(
        f"""
tracking = "archiver"

[databases.main]
url = "sqlite:///{tmp_path / 'main.db'}"

[databases.scratch]
url = "sqlite:///{tmp_path / 'scratch.db'}"

[databases.archiver]
url = "sqlite:///{tmp_path / 'archiver.db'}"

[blob_store]
provider = "local"
path = "{tmp_path / 'blobs'}"
"""
    )
    return path


# ============================================================================
# Parser
# ============================================================================


class TestParser:
    """Subcommands and flags."""

    def test_backup_args(self):
        args = build_parser().parse_args(["backup", "--from", "main", "--name", "n1"])
        assert (args.command, args.source, args.name) == ("backup", "main", "n1")

    def test_backup_name_optional(self):
        args = build_parser().parse_args(["backup", "-f", "main"])
        assert args.name is None

    def test_restore_args(self):
        args = build_parser().parse_args(
            ["restore", "--from", "main", "--to", "scratch", "--name", "n1.tar", "--no-preflight"]
        )
        assert (args.source, args.dest, args.name, args.no_preflight) == (
            "main", "scratch", "n1.tar", True,
        )

    def test_verbose_counts(self):
        args = build_parser().parse_args(["-vv", "list"])
        assert args.verbose == 2

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_restore_requires_destination(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["restore", "--from", "main", "--name", "n1"])


# ============================================================================
# Commands
# ============================================================================


class TestCommands:
    """Exit codes of full command runs."""

    def test_backup_pack_restore_list(self, config_file, capsys):
        cfg = ["--config", str(config_file)]
        assert main(cfg + ["backup", "--from", "main", "--name", "n1"]) == 0
        assert main(cfg + ["pack", "--from", "main", "--name", "n1", "--gzip"]) == 0
        assert main(cfg + ["restore", "--from", "main", "--to", "scratch", "--name", "n1.tgz"]) == 0
        assert main(cfg + ["list"]) == 0

        out = capsys.readouterr().out
        assert "backup restored from tarball" in out
        assert "n1.tgz" in out

    def test_plan(self, config_file, capsys):
        assert main(["--config", str(config_file), "plan", "--from", "main"]) == 0
        out = capsys.readouterr().out
        assert "Customers" in out
        assert "Orders" in out

    def test_restore_conflict_exits_1(self, config_file, capsys):
        cfg = ["--config", str(config_file)]
        assert main(cfg + ["backup", "--from", "main", "--name", "n1"]) == 0
        # Restoring onto the source itself conflicts on every table
        assert main(cfg + ["restore", "--from", "main", "--to", "main", "--name", "n1"]) == 1
        assert "already exist" in capsys.readouterr().out

    def test_unknown_binding_exits_1(self, config_file, capsys):
        assert main(["--config", str(config_file), "backup", "--from", "nope"]) == 1
        assert "no such bound database 'nope'" in capsys.readouterr().out

    def test_invalid_name_exits_1(self, config_file):
        assert main(["--config", str(config_file), "backup", "--from", "main", "--name", "a b"]) == 1

    def test_missing_config_exits_1(self, tmp_path, capsys):
        assert main(["--config", str(tmp_path / "absent.toml"), "list"]) == 1
        assert "not found" in capsys.readouterr().out
