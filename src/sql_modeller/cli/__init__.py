"""CLI for reading, comparing and synchronizing table structures.

Usage:
    sql-modeller profiles
    DB_PROFILE=local sql-modeller show --table users
    sql-modeller --profile local diff --from prod --table users
    sql-modeller --profile local sync --from prod --table users --dry-run
    sql-modeller --profile local sync --from prod --table users --delete-missing-columns

Commands:
    profiles  - List configured profiles
    show      - Print the live structure of a table
    diff      - Compare a table against its definition in another profile
    sync      - Change a table to match its definition in another profile
"""

import argparse
import sys
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table as RichTable

from sql_modeller.config.loader import load_modeller_config
from sql_modeller.config.models import ModellerConfig
from sql_modeller.errors import ModellerError
from sql_modeller.factory import (
    ProfileNotFoundError,
    database_name,
    get_active_profile_name,
    get_modeller,
    get_profile,
)
from sql_modeller.modeller import SqlModeller
from sql_modeller.schema.comparator import compare, format_report
from sql_modeller.schema.models import (
    BinaryColumn,
    BitColumn,
    Column,
    Database,
    DecimalColumn,
    EnumColumn,
    SetColumn,
    StringColumn,
    Table,
)
from sql_modeller.schema.sync import SqlSynchronizer

console = Console()


# ============================================================================
# Helpers
# ============================================================================


def _load_config(args: argparse.Namespace) -> ModellerConfig:
    return load_modeller_config(Path(args.config) if args.config else None)


def _open(
    args: argparse.Namespace, config: ModellerConfig, profile_name: str | None = None
) -> tuple[SqlModeller, Database]:
    """Modeller and an empty database model for a profile."""
    if profile_name is None:
        profile_name = args.profile
    name, profile = get_profile(profile_name, config, args.env_prefix)
    modeller = get_modeller(name, config, args.env_prefix)
    return modeller, Database(database_name(profile))


def _read_wanted(
    args: argparse.Namespace, config: ModellerConfig, target: Database
) -> Table:
    """Read the table from the source profile, re-homed onto ``target``."""
    source_modeller, source_db = _open(args, config, args.source)
    wanted = source_modeller.read_table(source_db, args.table)
    return wanted.copy(target)


def _describe_type(column: Column) -> str:
    kind = type(column).__name__.removesuffix("Column")
    if isinstance(column, (StringColumn, BinaryColumn)):
        return f"{kind}({column.length})"
    if isinstance(column, DecimalColumn):
        return f"{kind}({column.precision},{column.scale})"
    if isinstance(column, BitColumn):
        return f"{kind}({column.bits})"
    if isinstance(column, (EnumColumn, SetColumn)):
        return f"{kind}({', '.join(sorted(column.labels))})"
    return f"{kind}[{column.wire_type.name}]"


def _flag(value: bool) -> str:
    return "[green]yes[/green]" if value else ""


# ============================================================================
# Commands
# ============================================================================


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from db.toml.

    Reads only local TOML config -- no database calls.

    Returns:
        0 on success, 1 if db.toml not found.
    """
    config = _load_config(args)

    current = args.profile
    if current is None:
        try:
            current = get_active_profile_name(args.env_prefix)
        except ProfileNotFoundError:
            current = None

    table = RichTable(title="Database Profiles", show_header=True, header_style="bold")
    table.add_column("", width=2)
    table.add_column("Profile")
    table.add_column("Dialect")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        marker = "[bold green]*[/bold green]" if name == current else " "
        name_style = "bold cyan" if name == current else ""
        table.add_row(
            marker,
            f"[{name_style}]{name}[/{name_style}]" if name_style else name,
            profile.dialect or "(from url)",
            profile.description or "",
        )

    console.print(table)

    if current:
        console.print("\n[bold green]*[/bold green] = current profile")

    return 0


def cmd_show(args: argparse.Namespace) -> int:
    """Print the columns and indexes of a live table."""
    config = _load_config(args)
    modeller, database = _open(args, config)
    table = modeller.read_table(database, args.table)

    columns = RichTable(
        title=f"{database.name}.{table.name}", show_header=True, header_style="bold"
    )
    columns.add_column("Column")
    columns.add_column("Type")
    columns.add_column("Nullable")
    columns.add_column("Key")
    columns.add_column("Auto")
    columns.add_column("Default")
    for column in table.columns:
        columns.add_row(
            column.name,
            _describe_type(column),
            _flag(column.nullable),
            _flag(column.key),
            _flag(column.auto_increment),
            column.default if column.default is not None else "[dim]-[/dim]",
        )
    console.print(columns)

    if table.indexes:
        indexes = RichTable(title="Indexes", show_header=True, header_style="bold")
        indexes.add_column("Index")
        indexes.add_column("Columns")
        indexes.add_column("Unique")
        for index in table.indexes:
            indexes.add_row(index.name, ", ".join(index.column_names), _flag(index.unique))
        console.print(indexes)

    return 0


def cmd_diff(args: argparse.Namespace) -> int:
    """Compare the live table with its definition in the source profile.

    Returns:
        0 when identical, 1 when they differ.
    """
    config = _load_config(args)
    modeller, database = _open(args, config)
    wanted = _read_wanted(args, config, database)

    if not modeller.table_exists(wanted):
        console.print(f"[yellow]Table '{args.table}' does not exist in {database.name}.[/yellow]")
        return 1

    live = modeller.read_table(Database(database.name), args.table)
    diffs = compare(live, wanted, normalize=modeller.normalized_length)
    console.print(format_report(diffs), markup=False)
    return 1 if diffs else 0


def cmd_sync(args: argparse.Namespace) -> int:
    """Synchronize the live table to its definition in the source profile."""
    config = _load_config(args)
    modeller, database = _open(args, config)
    wanted = _read_wanted(args, config, database)

    if args.dry_run:
        if modeller.table_exists(wanted):
            live = modeller.read_table(Database(database.name), args.table)
            report = format_report(compare(live, wanted, modeller.normalized_length))
            console.print(report, markup=False)
        else:
            console.print(f"Table '{args.table}' would be created.")
        console.print()
        console.print("[bold yellow]DRY RUN[/bold yellow] - No changes made.")
        return 0

    synchronizer = SqlSynchronizer(
        modeller,
        delete_missing_columns=args.delete_missing_columns or config.sync.delete_missing_columns,
        delete_missing_indexes=args.delete_missing_indexes or config.sync.delete_missing_indexes,
    )
    actions = synchronizer.synchronize(wanted)

    if not actions:
        console.print("[bold green]v[/bold green] Table is already in sync.")
        return 0

    table = RichTable(title="Applied Changes", show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Action")
    table.add_column("Details")
    for number, action in enumerate(actions, start=1):
        table.add_row(str(number), action.type.value, action.message)
    console.print(table)
    console.print("[bold green]v[/bold green] Sync complete.")
    return 0


# ============================================================================
# Main entry point
# ============================================================================


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        prog="sql-modeller",
        description="Read, compare and synchronize SQL table structures",
    )
    parser.add_argument("--config", help="Path to db.toml (default: ./db.toml)")
    parser.add_argument("--profile", help="Profile to operate on")
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_DB_PROFILE)"
        ),
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # profiles command
    p_profiles = subparsers.add_parser("profiles", help="List available profiles")
    p_profiles.set_defaults(func=cmd_profiles)

    # show command
    p_show = subparsers.add_parser("show", help="Print the live structure of a table")
    p_show.add_argument("--table", required=True, help="Table name")
    p_show.set_defaults(func=cmd_show)

    # diff command
    p_diff = subparsers.add_parser(
        "diff",
        help="Compare a table against its definition in another profile",
    )
    p_diff.add_argument(
        "--from", "-f", dest="source", required=True, help="Profile holding the wanted table"
    )
    p_diff.add_argument("--table", required=True, help="Table name")
    p_diff.set_defaults(func=cmd_diff)

    # sync command
    p_sync = subparsers.add_parser(
        "sync",
        help="Change a table to match its definition in another profile",
    )
    p_sync.add_argument(
        "--from", "-f", dest="source", required=True, help="Profile holding the wanted table"
    )
    p_sync.add_argument("--table", required=True, help="Table name")
    p_sync.add_argument(
        "--dry-run",
        action="store_true",
        help="Show the differences without making changes",
    )
    p_sync.add_argument(
        "--delete-missing-columns",
        action="store_true",
        help="Drop live columns the source table does not have",
    )
    p_sync.add_argument(
        "--delete-missing-indexes",
        action="store_true",
        help="Drop live indexes the source table does not have",
    )
    p_sync.set_defaults(func=cmd_sync)

    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except (ModellerError, ProfileNotFoundError, FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
