"""CLI for object snapshot backup, restore, and diff.

Backs up the objects of a JSON object library into a snapshot directory
(one file per identity), previews what a restore would change, and
restores snapshots onto the live objects, optionally renaming fields.

Usage:
    object-snapshot backup
    object-snapshot backup weapons/ --kind Weapon
    object-snapshot diff --rename damage=baseDamage
    object-snapshot restore --rename damage=baseDamage --yes
    object-snapshot inspect weapons/Sword.json
    object-snapshot check-renames

Commands:
    backup         - Write one snapshot per object
    restore        - Overwrite objects from their snapshots
    diff           - Show what a restore would change
    inspect        - Print an object's flattened property map
    check-renames  - Report conflicting rename rules
"""

import argparse
import logging
import signal
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress
from rich.table import Table

from object_snapshot.adapters.library import ObjectLibrary
from object_snapshot.backup.backup_restore import (
    backup_objects,
    diff_objects,
    restore_objects,
)
from object_snapshot.backup.models import BatchReport, ItemState
from object_snapshot.backup.renames import find_rename_conflicts
from object_snapshot.backup.store import SnapshotDirectoryError, SnapshotStore
from object_snapshot.config.loader import CONFIG_FILE_NAME, load_config
from object_snapshot.config.models import SnapshotConfig
from object_snapshot.schema.flattener import flatten_object
from object_snapshot.schema.models import DiffKind

console = Console()

_STATE_STYLES = {
    ItemState.DONE: "green",
    ItemState.SKIPPED: "yellow",
    ItemState.FAILED: "bold red",
}

_DIFF_STYLES = {
    DiffKind.ADDED: "green",
    DiffKind.REMOVED: "red",
    DiffKind.MODIFIED: "yellow",
}


# ============================================================================
# Argument and config helpers
# ============================================================================


def _parse_rename(value: str) -> tuple[str, str]:
    """Parse an ``old=new`` rename rule.

    Example:
        >>> _parse_rename("damage=baseDamage")
        ('damage', 'baseDamage')
    """
    old, sep, new = value.partition("=")
    old, new = old.strip(), new.strip()
    if not sep or not old or not new:
        raise argparse.ArgumentTypeError(
            f"Invalid rename '{value}' (expected old=new)"
        )
    return old, new


def _load_settings(args: argparse.Namespace) -> SnapshotConfig:
    """Load config from ``--config`` or the default file, then apply overrides.

    Without any config file the current directory is the library root.
    """
    config_path = Path(args.config) if args.config else Path.cwd() / CONFIG_FILE_NAME
    if args.config or config_path.exists():
        config = load_config(config_path)
    else:
        config = SnapshotConfig(library_root=str(Path.cwd()))

    updates: dict = {}
    if getattr(args, "library", None):
        updates["library_root"] = str(Path(args.library).resolve())
    if getattr(args, "dir", None):
        updates["snapshot_dir"] = str(Path(args.dir).resolve())
    if getattr(args, "rename", None):
        updates["renames"] = {**config.renames, **dict(args.rename)}
    return config.model_copy(update=updates)


def _open(config: SnapshotConfig) -> tuple[ObjectLibrary, SnapshotStore]:
    library = ObjectLibrary(
        config.library_root,
        kinds=config.kinds,
        exclude=[config.snapshot_dir],
    )
    store = SnapshotStore(
        config.snapshot_dir,
        separator=config.separator,
        extension=config.extension,
    )
    return library, store


def _run_with_progress(title: str, run) -> BatchReport:
    """Run a batch with a progress bar; Ctrl-C cancels between items."""
    cancelled = False

    def _on_interrupt(signum, frame):
        nonlocal cancelled
        cancelled = True

    previous = signal.signal(signal.SIGINT, _on_interrupt)
    try:
        with Progress(console=console, transient=True) as progress:
            task = progress.add_task(title, total=None)

            def _progress(index: int, total: int, label: str) -> bool:
                progress.update(task, total=total, completed=index, description=label)
                return not cancelled

            return run(_progress)
    finally:
        signal.signal(signal.SIGINT, previous)


def _print_report(report: BatchReport) -> None:
    table = Table(
        title=f"{report.operation.capitalize()}: {report.directory}",
        show_header=True,
        header_style="bold",
    )
    table.add_column("Item")
    table.add_column("State")
    table.add_column("Detail", style="dim")

    for item in report.items:
        style = _STATE_STYLES.get(item.state, "")
        table.add_row(item.label, f"[{style}]{item.state.value}[/{style}]", item.detail)

    console.print(table)

    for warning in report.warnings:
        console.print(f"[yellow]! {warning}[/yellow]")

    console.print(
        f"[bold]{report.done_count}[/bold] done, "
        f"[yellow]{report.skipped_count}[/yellow] skipped, "
        f"[red]{report.failed_count}[/red] failed"
    )
    if report.cancelled:
        console.print("[bold yellow]Cancelled[/bold yellow] - remaining items untouched.")


def _print_diffs(report: BatchReport) -> None:
    for item in report.items:
        if not item.diff:
            continue
        table = Table(title=item.label, show_header=True, header_style="bold")
        table.add_column("Path")
        table.add_column("Change")
        table.add_column("Current", style="dim")
        table.add_column("Snapshot")
        for entry in item.diff:
            style = _DIFF_STYLES[entry.kind]
            table.add_row(
                entry.path,
                f"[{style}]{entry.kind.value}[/{style}]",
                entry.current if entry.current is not None else "-",
                entry.backup if entry.backup is not None else "-",
            )
        console.print(table)


def _exit_code(report: BatchReport) -> int:
    return 0 if report.success else 1


# ============================================================================
# Command implementations
# ============================================================================


def cmd_backup(args: argparse.Namespace) -> int:
    """Write one snapshot per object in the selected paths (or the library).

    Args:
        args: Parsed arguments with paths, kind, and no_alias.

    Returns:
        0 on success, 1 on failure.
    """
    config = _load_settings(args)
    library, store = _open(config)

    handles = library.objects(args.paths)
    if not handles:
        console.print("[yellow]No objects found in the selected scope.[/yellow]")
        return 0

    try:
        report = _run_with_progress(
            "Backing up objects",
            lambda progress: backup_objects(
                library,
                library,
                handles,
                store,
                kind=args.kind,
                use_alias=config.use_alias and not args.no_alias,
                progress=progress,
            ),
        )
    except SnapshotDirectoryError as e:
        console.print(f"[bold red]x[/bold red] {e}")
        return 1

    _print_report(report)
    return _exit_code(report)


def cmd_restore(args: argparse.Namespace) -> int:
    """Overwrite objects from their snapshots after confirmation.

    Args:
        args: Parsed arguments with kind, rename, identity, yes, and no_save.

    Returns:
        0 on success (or cancelled prompt), 1 on failure.
    """
    config = _load_settings(args)
    library, store = _open(config)

    for warning in config.rename_conflicts:
        console.print(f"[yellow]! {warning}[/yellow]")

    if not args.yes:
        console.print(f"This will overwrite objects from: [cyan]{store.directory}[/cyan]")
        if config.renames:
            renames = ", ".join(f"{k} -> {v}" for k, v in config.renames.items())
            console.print(f"  Renames: {renames}")
        response = input("Continue? [y/N] ")
        if response.lower() not in ["y", "yes"]:
            console.print("Cancelled.")
            return 0

    try:
        report = _run_with_progress(
            "Restoring objects",
            lambda progress: restore_objects(
                library,
                library,
                store,
                renames=config.renames,
                kind=args.kind,
                identities=args.identity,
                save=not args.no_save,
                progress=progress,
            ),
        )
    except SnapshotDirectoryError as e:
        console.print(f"[bold red]x[/bold red] {e}")
        return 1

    _print_report(report)
    if report.saved:
        console.print(f"Saved {report.saved} object(s).")
    return _exit_code(report)


def cmd_diff(args: argparse.Namespace) -> int:
    """Show what restoring each snapshot would change.

    Args:
        args: Parsed arguments with kind, rename, and identity.

    Returns:
        0 on success, 1 on failure.
    """
    config = _load_settings(args)
    library, store = _open(config)

    try:
        report = _run_with_progress(
            "Comparing objects",
            lambda progress: diff_objects(
                library,
                library,
                store,
                renames=config.renames,
                kind=args.kind,
                identities=args.identity,
                progress=progress,
            ),
        )
    except SnapshotDirectoryError as e:
        console.print(f"[bold red]x[/bold red] {e}")
        return 1

    _print_diffs(report)
    _print_report(report)
    return _exit_code(report)


def cmd_inspect(args: argparse.Namespace) -> int:
    """Print an object's flattened property map.

    Args:
        args: Parsed arguments with path.

    Returns:
        0 on success, 1 if the object is not found.
    """
    config = _load_settings(args)
    library, _ = _open(config)

    handle = library.get(args.path)
    if handle is None:
        console.print(f"[red]Error: No object at {args.path}[/red]")
        return 1

    table = Table(
        title=f"{library.label_of(handle)} ({handle.kind})",
        show_header=True,
        header_style="bold",
    )
    table.add_column("Path")
    table.add_column("Value")
    for path, value in flatten_object(library, handle).items():
        table.add_row(path, value)

    console.print(table)
    console.print(f"[dim]Identity:[/dim] {handle.identity or '-'}")
    return 0


def cmd_check_renames(args: argparse.Namespace) -> int:
    """Report rename rules whose application order matters.

    Args:
        args: Parsed arguments with rename.

    Returns:
        0 if the rename table is confluent, 1 otherwise.
    """
    config = _load_settings(args)

    if not config.renames:
        console.print("[dim]No renames configured.[/dim]")
        return 0

    table = Table(title="Renames", show_header=True, header_style="bold")
    table.add_column("Old key")
    table.add_column("New key")
    for old, new in config.renames.items():
        table.add_row(old, new)
    console.print(table)

    conflicts = find_rename_conflicts(config.renames)
    if not conflicts:
        console.print("[bold green]v[/bold green] No conflicts")
        return 0

    for warning in conflicts:
        console.print(f"[yellow]! {warning}[/yellow]")
    return 1


# ============================================================================
# Main entry point
# ============================================================================


def main() -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        prog="object-snapshot",
        description="Back up, diff, and restore object state by stable identity",
    )
    parser.add_argument(
        "--config",
        "-c",
        help=f"Path to config file (default: ./{CONFIG_FILE_NAME})",
    )
    parser.add_argument("--library", "-l", help="Library root directory")
    parser.add_argument("--dir", "-d", help="Snapshot directory")
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Show debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # backup command
    p_backup = subparsers.add_parser("backup", help="Write one snapshot per object")
    p_backup.add_argument(
        "paths",
        nargs="*",
        help="Files or folders to back up (default: whole library)",
    )
    p_backup.add_argument("--kind", "-k", help="Only objects of this kind")
    p_backup.add_argument(
        "--no-alias",
        action="store_true",
        help="Name files by identity only",
    )
    p_backup.set_defaults(func=cmd_backup)

    # restore / diff share selection options
    for name, func, help_text in (
        ("restore", cmd_restore, "Overwrite objects from their snapshots"),
        ("diff", cmd_diff, "Show what a restore would change"),
    ):
        p = subparsers.add_parser(name, help=help_text)
        p.add_argument("--kind", "-k", help="Only objects of this kind")
        p.add_argument(
            "--rename",
            "-r",
            action="append",
            type=_parse_rename,
            metavar="OLD=NEW",
            help="Rename a field key before applying (repeatable)",
        )
        p.add_argument(
            "--identity",
            "-i",
            action="append",
            help="Only this identity (repeatable)",
        )
        p.set_defaults(func=func)

        if name == "restore":
            p.add_argument(
                "--yes", "-y", action="store_true", help="Skip confirmation prompt"
            )
            p.add_argument(
                "--no-save",
                action="store_true",
                help="Apply in memory without writing object files",
            )

    # inspect command
    p_inspect = subparsers.add_parser(
        "inspect", help="Print an object's flattened property map"
    )
    p_inspect.add_argument("path", help="Object file (relative to library root)")
    p_inspect.set_defaults(func=cmd_inspect)

    # check-renames command
    p_check = subparsers.add_parser(
        "check-renames", help="Report conflicting rename rules"
    )
    p_check.add_argument(
        "--rename",
        "-r",
        action="append",
        type=_parse_rename,
        metavar="OLD=NEW",
        help="Additional rename rule (repeatable)",
    )
    p_check.set_defaults(func=cmd_check_renames)

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )

    try:
        return args.func(args)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
