"""CLI for creating, listing, packing and restoring database backups.

Usage:
    db-archiver backup --from main --name nightly
    db-archiver list
    db-archiver pack --from main --name nightly --gzip
    db-archiver restore --from main --to scratch --name nightly
    db-archiver restore --from main --to scratch --name nightly.tgz
    db-archiver plan --from main

Commands:
    backup   - Back up a database to the blob store
    restore  - Restore a backup into an empty database
    list     - List tracked backups
    pack     - Pack an object-set backup into a tar archive
    plan     - Show the load order a backup would use
"""

import argparse
import asyncio
import json
import logging
import sys

from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from db_archiver.config.loader import load_config
from db_archiver.errors import ArchiverError
from db_archiver.service import ArchiverService, BackupCreateRequest, BackupRestoreRequest

console = Console()


def _configure_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def _make_service(args: argparse.Namespace) -> ArchiverService:
    return ArchiverService(load_config(args.config))


def _print_failure(error: ArchiverError) -> None:
    console.print(f"[bold red]x[/bold red] {escape(error.message)}")
    if error.details:
        console.print(
            json.dumps(error.details, indent=2, default=str), style="dim", markup=False
        )


def _run(coro_factory, args: argparse.Namespace) -> int:
    """Run one async command, turning known failures into exit code 1."""
    try:
        return asyncio.run(coro_factory(args))
    except FileNotFoundError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1
    except ValidationError as e:
        console.print(f"[bold red]x[/bold red] invalid request: {escape(str(e))}")
        return 1
    except ArchiverError as e:
        _print_failure(e)
        return 1


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_backup(args: argparse.Namespace) -> int:
    fields = {"fromDatabase": args.source}
    if args.name:
        fields["name"] = args.name
    request = BackupCreateRequest(**fields)

    service = _make_service(args)
    console.print(
        f"Backing up [bold cyan]{request.from_database}[/bold cyan] "
        f"as [bold]{request.name}[/bold]...",
        style="dim",
    )
    result = await service.create_backup(request)

    table = Table(title=f"Backup {result.base_key}", show_header=True, header_style="bold")
    table.add_column("Table")
    table.add_column("Indexes", justify="right")
    table.add_column("Rows", justify="right")
    for summary in result.tables:
        table.add_row(summary.name, str(summary.indexes), str(summary.rows))
    console.print(table)
    console.print(f"[bold green]v[/bold green] backup created: {result.base_key}")
    return 0


async def _async_restore(args: argparse.Namespace) -> int:
    request = BackupRestoreRequest(
        fromDatabase=args.source, toDatabase=args.dest, name=args.name
    )
    service = _make_service(args)
    console.print(
        f"Restoring [bold]{request.from_database}/{request.name}[/bold] into "
        f"[bold cyan]{request.to_database}[/bold cyan]...",
        style="dim",
    )
    result = await service.restore_backup(request, check_assets=not args.no_preflight)

    table = Table(title=f"Restored from {result.base_key}", show_header=True, header_style="bold")
    table.add_column("Table")
    table.add_column("Indexes", justify="right")
    table.add_column("Rows", justify="right")
    for restored in result.tables:
        table.add_row(restored.name, str(restored.indexes), str(restored.rows))
    console.print(table)
    console.print(
        f"[bold green]v[/bold green] backup restored from "
        f"{'tarball' if result.variant == 'archive' else 'file collection'}"
    )
    return 0


async def _async_list(args: argparse.Namespace) -> int:
    service = _make_service(args)
    records = await service.list_backups()

    if not records:
        console.print("[yellow]No backups recorded.[/yellow]")
        return 0

    table = Table(title="Backups", show_header=True, header_style="bold")
    table.add_column("ID", justify="right", style="dim")
    table.add_column("Database")
    table.add_column("Name")
    for record in records:
        table.add_row(str(record.id), record.source_database, record.backup_name)
    console.print(table)
    return 0


async def _async_pack(args: argparse.Namespace) -> int:
    service = _make_service(args)
    key = await service.pack_backup(args.source, args.name, compress=args.gzip)
    console.print(f"[bold green]v[/bold green] archive written: {key}")
    return 0


async def _async_plan(args: argparse.Namespace) -> int:
    service = _make_service(args)
    metadata = await service.plan(args.source)

    if not metadata.load_order:
        console.print("[yellow]Database has no tables.[/yellow]")
        return 0

    table = Table(title="Load Order", show_header=True, header_style="bold")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Table")
    table.add_column("Columns", justify="right")
    table.add_column("Indexes", justify="right")
    for position, name in enumerate(metadata.load_order, start=1):
        descriptor = metadata.tables[name]
        table.add_row(
            str(position), name, str(len(descriptor.columns)), str(len(descriptor.indexes))
        )
    console.print(table)
    return 0


# ============================================================================
# Sync command wrappers
# ============================================================================


def cmd_backup(args: argparse.Namespace) -> int:
    """Back up a database.  Wraps the async implementation with ``asyncio.run()``."""
    return _run(_async_backup, args)


def cmd_restore(args: argparse.Namespace) -> int:
    """Restore a backup.  Wraps the async implementation with ``asyncio.run()``."""
    return _run(_async_restore, args)


def cmd_list(args: argparse.Namespace) -> int:
    return _run(_async_list, args)


def cmd_pack(args: argparse.Namespace) -> int:
    return _run(_async_pack, args)


def cmd_plan(args: argparse.Namespace) -> int:
    return _run(_async_plan, args)


# ============================================================================
# Main entry point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="db-archiver",
        description="Foreign-key aware database backup and restore",
    )
    parser.add_argument(
        "--config",
        "-c",
        default=None,
        help="Path to db-archiver.toml (default: $DB_ARCHIVER_CONFIG or ./db-archiver.toml)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="count",
        default=0,
        help="Increase log output (-v info, -vv debug)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # backup command
    p_backup = subparsers.add_parser("backup", help="Back up a database to the blob store")
    p_backup.add_argument(
        "--from", "-f", dest="source", required=True, help="Database binding to back up"
    )
    p_backup.add_argument(
        "--name", "-n", default=None, help="Backup name (default: current timestamp)"
    )
    p_backup.set_defaults(func=cmd_backup)

    # restore command
    p_restore = subparsers.add_parser("restore", help="Restore a backup into an empty database")
    p_restore.add_argument(
        "--from", "-f", dest="source", required=True, help="Database the backup was taken from"
    )
    p_restore.add_argument(
        "--to", "-t", dest="dest", required=True, help="Database binding to restore into"
    )
    p_restore.add_argument(
        "--name", "-n", required=True, help="Backup name; a .tar/.tgz suffix restores an archive"
    )
    p_restore.add_argument(
        "--no-preflight",
        action="store_true",
        help="Skip checking that every table data file exists before restoring",
    )
    p_restore.set_defaults(func=cmd_restore)

    # list command
    p_list = subparsers.add_parser("list", help="List tracked backups")
    p_list.set_defaults(func=cmd_list)

    # pack command
    p_pack = subparsers.add_parser("pack", help="Pack an object-set backup into a tar archive")
    p_pack.add_argument(
        "--from", "-f", dest="source", required=True, help="Database the backup was taken from"
    )
    p_pack.add_argument("--name", "-n", required=True, help="Backup name")
    p_pack.add_argument("--gzip", action="store_true", help="Write a gzipped .tgz archive")
    p_pack.set_defaults(func=cmd_pack)

    # plan command
    p_plan = subparsers.add_parser("plan", help="Show the load order a backup would use")
    p_plan.add_argument(
        "--from", "-f", dest="source", required=True, help="Database binding to inspect"
    )
    p_plan.set_defaults(func=cmd_plan)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, 1 for errors).
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
