"""CLI for JewelVault spreadsheet backup and restore.

Usage:
    jewelvault-sync backup
    jewelvault-sync export shop.xlsx
    jewelvault-sync restore --mode merge
    jewelvault-sync restore --source local --file shop.xlsx --mode replace --yes
    jewelvault-sync validate shop.xlsx
    jewelvault-sync list
    jewelvault-sync cleanup --keep 3
    jewelvault-sync init-db

Commands:
    backup    - Export the datastore and upload it as the cloud backup
    export    - Export the datastore to a local file only
    restore   - Restore from the cloud backup or a local file
    validate  - Check a backup file's sheets and headers
    list      - List cloud backups of the active user
    cleanup   - Delete all but the newest N cloud backups
    init-db   - Create the datastore tables
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from jewelvault_sync.backup.catalog import build_metadata
from jewelvault_sync.backup.models import ImportSummary, RestoreMode
from jewelvault_sync.backup.validator import validate_structure
from jewelvault_sync.config.loader import load_sync_config
from jewelvault_sync.config.models import SyncConfig
from jewelvault_sync.errors import ProfileNotFoundError
from jewelvault_sync.factory import get_adapter, get_sync_manager
from jewelvault_sync.manager import SyncManager
from jewelvault_sync.results import RestoreSource

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _load_config(args: argparse.Namespace) -> SyncConfig | None:
    try:
        return load_sync_config(Path(args.config) if args.config else None)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return None


def _build_manager(args: argparse.Namespace) -> SyncManager | None:
    config = _load_config(args)
    if config is None:
        return None
    try:
        return get_sync_manager(config, args.profile)
    except ProfileNotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        return None


def _print_progress(message: str, percent: int) -> None:
    console.print(f"  [dim]{percent:3d}%[/dim] {message}")


def _print_summary(summary: ImportSummary) -> None:
    table = Table(
        title=f"Restore Summary ({summary.mode.value})", show_header=True, header_style="bold"
    )
    table.add_column("Entity", style="dim")
    table.add_column("Added", justify="right", style="green")
    table.add_column("Skipped", justify="right", style="yellow")
    table.add_column("Failed", justify="right", style="red")
    table.add_column("Defaulted", justify="right")

    for label, outcome in summary.outcomes.items():
        table.add_row(
            label,
            str(outcome.added),
            str(outcome.skipped) if outcome.skipped else "-",
            str(outcome.failed) if outcome.failed else "-",
            str(outcome.defaulted) if outcome.defaulted else "-",
        )
    console.print(table)

    if summary.missing_sheets:
        console.print(
            f"[yellow]Missing sheets (skipped):[/yellow] {', '.join(summary.missing_sheets)}"
        )


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_backup(args: argparse.Namespace) -> int:
    manager = _build_manager(args)
    if manager is None:
        return 1
    try:
        console.print("Backing up datastore...", style="dim")
        result = await manager.perform_backup(progress=_print_progress)
    finally:
        await manager.adapter.close()

    if not result.success:
        console.print(f"[bold red]x[/bold red] {result.error}")
        return 1
    console.print("[bold green]v[/bold green] Backup uploaded.")
    console.print(f"  [dim]{result.value}[/dim]")
    return 0


async def _async_export(args: argparse.Namespace) -> int:
    manager = _build_manager(args)
    if manager is None:
        return 1
    try:
        result = await manager.perform_local_export(args.path, progress=_print_progress)
    finally:
        await manager.adapter.close()

    if not result.success:
        console.print(f"[bold red]x[/bold red] {result.error}")
        return 1
    console.print(f"[bold green]v[/bold green] Exported to [cyan]{result.value}[/cyan]")
    return 0


async def _async_restore(args: argparse.Namespace) -> int:
    source = RestoreSource(args.source)
    mode = RestoreMode(args.mode)

    if source is RestoreSource.LOCAL and not args.file:
        console.print("[red]Error: --file is required with --source local[/red]")
        return 1

    if mode is RestoreMode.REPLACE and not args.yes:
        console.print(
            "[bold yellow]REPLACE[/bold yellow] overwrites existing records "
            "(except the active user and store)."
        )
        console.print("[dim]To actually restore, add[/dim] [cyan]--yes[/cyan] [dim]flag.[/dim]")
        return 0

    manager = _build_manager(args)
    if manager is None:
        return 1
    try:
        result = await manager.perform_restore_with_source(
            manager.session.user_mobile,
            source,
            args.file,
            mode,
            progress=_print_progress,
        )
    finally:
        await manager.adapter.close()

    if not result.success:
        console.print(f"[bold red]x[/bold red] {result.error}")
        return 1

    console.print()
    _print_summary(result.value.summary)
    console.print(f"[bold green]v[/bold green] {result.value.message}")
    return 0


async def _async_list(args: argparse.Namespace) -> int:
    manager = _build_manager(args)
    if manager is None:
        return 1
    try:
        result = await manager.list_backups(manager.session.user_mobile)
    finally:
        await manager.adapter.close()

    if not result.success:
        console.print(f"[bold red]x[/bold red] {result.error}")
        return 1
    if not result.value:
        console.print("[yellow]No backups found.[/yellow]")
        return 0

    table = Table(title="Cloud Backups", show_header=True, header_style="bold")
    table.add_column("File")
    table.add_column("Uploaded")
    table.add_column("Size", justify="right")
    for info in result.value:
        uploaded = info.upload_date.strftime("%Y-%m-%d %H:%M:%S") if info.upload_date else "-"
        table.add_row(info.file_name, uploaded, f"{info.file_size:,}")
    console.print(table)
    return 0


async def _async_cleanup(args: argparse.Namespace) -> int:
    manager = _build_manager(args)
    if manager is None:
        return 1
    try:
        result = await manager.cleanup_old_backups(manager.session.user_mobile, args.keep)
    finally:
        await manager.adapter.close()

    if not result.success:
        console.print(f"[bold red]x[/bold red] {result.error}")
        return 1
    console.print(f"[bold green]v[/bold green] Deleted {result.value} old backup(s).")
    return 0


async def _async_init_db(args: argparse.Namespace) -> int:
    config = _load_config(args)
    if config is None:
        return 1
    try:
        adapter = get_adapter(config, args.profile)
    except ProfileNotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1
    try:
        await adapter.create_tables(build_metadata())
    finally:
        await adapter.close()
    console.print("[bold green]v[/bold green] Tables created.")
    return 0


# ============================================================================
# Sync command wrappers
# ============================================================================


def cmd_backup(args: argparse.Namespace) -> int:
    return asyncio.run(_async_backup(args))


def cmd_export(args: argparse.Namespace) -> int:
    return asyncio.run(_async_export(args))


def cmd_restore(args: argparse.Namespace) -> int:
    return asyncio.run(_async_restore(args))


def cmd_list(args: argparse.Namespace) -> int:
    return asyncio.run(_async_list(args))


def cmd_cleanup(args: argparse.Namespace) -> int:
    return asyncio.run(_async_cleanup(args))


def cmd_init_db(args: argparse.Namespace) -> int:
    return asyncio.run(_async_init_db(args))


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate a backup file's structure.

    Reads only the local file -- no database or cloud calls.
    """
    report = validate_structure(args.path)
    if report.valid:
        console.print("[bold green]v[/bold green] Backup file structure is valid")
        return 0
    console.print("[bold red]x[/bold red] Backup file structure is invalid")
    for diagnostic in report.diagnostics:
        console.print(f"    - {diagnostic}")
    return 1


# ============================================================================
# Main entry point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jewelvault-sync",
        description="JewelVault spreadsheet backup and restore",
    )
    parser.add_argument("--config", help="Path to sync.toml (default: $JV_CONFIG or ./sync.toml)")
    parser.add_argument("--profile", help="Database profile (default: $JV_DB_PROFILE)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    p_backup = subparsers.add_parser("backup", help="Export and upload a cloud backup")
    p_backup.set_defaults(func=cmd_backup)

    p_export = subparsers.add_parser("export", help="Export the datastore to a local file")
    p_export.add_argument("path", nargs="?", help="Output .xlsx path (default: work dir)")
    p_export.set_defaults(func=cmd_export)

    p_restore = subparsers.add_parser("restore", help="Restore from cloud or a local file")
    p_restore.add_argument(
        "--source",
        choices=[s.value for s in RestoreSource],
        default=RestoreSource.CLOUD.value,
        help="Where to read the backup from (default: cloud)",
    )
    p_restore.add_argument("--file", help="Local .xlsx file (with --source local)")
    p_restore.add_argument(
        "--mode",
        choices=[m.value for m in RestoreMode],
        default=RestoreMode.MERGE.value,
        help="merge keeps existing records, replace overwrites them (default: merge)",
    )
    p_restore.add_argument(
        "--yes",
        action="store_true",
        help="Confirm a replace restore",
    )
    p_restore.set_defaults(func=cmd_restore)

    p_validate = subparsers.add_parser("validate", help="Check a backup file's structure")
    p_validate.add_argument("path", help="Backup .xlsx file")
    p_validate.set_defaults(func=cmd_validate)

    p_list = subparsers.add_parser("list", help="List cloud backups")
    p_list.set_defaults(func=cmd_list)

    p_cleanup = subparsers.add_parser("cleanup", help="Delete old cloud backups")
    p_cleanup.add_argument(
        "--keep",
        type=int,
        default=5,
        help="Number of newest backups to keep (default: 5)",
    )
    p_cleanup.set_defaults(func=cmd_cleanup)

    p_init = subparsers.add_parser("init-db", help="Create the datastore tables")
    p_init.set_defaults(func=cmd_init_db)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
