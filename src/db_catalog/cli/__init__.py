"""CLI for catalog inspection and DDL scripting.

Usage:
    db-catalog profiles
    DB_CATALOG_PROFILE=local db-catalog inspect --table orders
    db-catalog --profile local ddl --table orders --schema sales

Commands:
    profiles  - List profiles configured in catalog.toml
    inspect   - Load a table and show columns, keys, indexes and warnings
    ddl       - Print the CREATE TABLE script for a table
"""

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from db_catalog.catalog.loader import LoadStatus, TableLoadResult
from db_catalog.config.loader import load_engine_config
from db_catalog.config.models import EngineConfig
from db_catalog.exceptions import CatalogEngineError, DDLValidationError
from db_catalog.factory import (
    create_generator,
    create_loader,
    get_active_profile_name,
    open_source,
)

console = Console()


# ============================================================================
# Helpers
# ============================================================================


def _load_config(args: argparse.Namespace) -> EngineConfig:
    return load_engine_config(Path(args.config) if args.config else None)


def _find_result(results: list[TableLoadResult], name: str) -> TableLoadResult | None:
    for result in results:
        if result.name.lower() == name.lower():
            return result
    return None


def _print_warnings(result: TableLoadResult) -> None:
    if not result.warnings:
        return
    console.print()
    console.print(f"[yellow]Warnings ({len(result.warnings)}):[/yellow]")
    for warning in result.warnings:
        console.print(f"  [yellow]![/yellow] {warning}")


def _load_table(args: argparse.Namespace, config: EngineConfig, count_rows: bool = False):
    """Load the schema of --table through the live source.

    The whole schema is loaded so foreign keys to other tables resolve.

    Returns:
        (TableLoadResult or None, row count or None)
    """
    schema = args.schema or config.default_schema
    with open_source(args.profile, args.env_prefix, config) as source:
        loader = create_loader(source, config)
        results = loader.load_container(None, schema)
        result = _find_result(results, args.table)
        row_count = None
        if count_rows and result is not None and result.table is not None:
            row_count = result.table.get_row_count(source.count_rows, config.capabilities)
    return result, row_count


# ============================================================================
# Commands
# ============================================================================


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from catalog.toml.

    Reads only local TOML config -- no database calls.

    Returns:
        0 on success, 1 if catalog.toml is missing or invalid.
    """
    try:
        config = _load_config(args)
    except (FileNotFoundError, CatalogEngineError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    try:
        current = get_active_profile_name(args.env_prefix)
    except CatalogEngineError:
        current = None

    table = Table(title="Database Profiles", show_header=True, header_style="bold")
    table.add_column("", width=2)
    table.add_column("Profile")
    table.add_column("Provider")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        marker = "[bold green]*[/bold green]" if name == current else " "
        name_style = "bold cyan" if name == current else ""
        table.add_row(
            marker,
            f"[{name_style}]{name}[/{name_style}]" if name_style else name,
            profile.provider,
            profile.description or "",
        )

    console.print(table)

    if current:
        console.print("\n[bold green]*[/bold green] = current profile")

    return 0


def cmd_inspect(args: argparse.Namespace) -> int:
    """Load one table and print its structure.

    Returns:
        0 when the table loaded (warnings allowed), 1 otherwise.
    """
    try:
        config = _load_config(args)
        result, row_count = _load_table(args, config, count_rows=True)
    except (FileNotFoundError, CatalogEngineError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        return 1

    if result is None:
        console.print(f"[red]Table '{args.table}' not found[/red]")
        return 1
    if result.status == LoadStatus.FAILED:
        console.print(f"[bold red]x[/bold red] {result.name}: {result.error}")
        return 1

    loaded = result.table
    console.print(f"[bold]{loaded.full_name}[/bold] ({loaded.table_type.value.lower()})")
    if loaded.comment:
        console.print(f"[dim]{loaded.comment}[/dim]")
    if row_count is not None:
        console.print(f"Rows: {row_count if row_count >= 0 else 'unknown'}")

    columns = Table(title="Columns", show_header=True, header_style="bold")
    columns.add_column("#", style="dim")
    columns.add_column("Name")
    columns.add_column("Type")
    columns.add_column("Null")
    columns.add_column("Default")
    for column in loaded.ordered_columns():
        columns.add_row(
            str(column.ordinal_position),
            f"[cyan]{column.name}[/cyan]" if column.in_unique_key else column.name,
            column.type_name,
            "" if column.required else "yes",
            column.default_value or "",
        )
    console.print(columns)

    if loaded.unique_keys:
        keys = Table(title="Keys", show_header=True, header_style="bold")
        keys.add_column("Name")
        keys.add_column("Type")
        keys.add_column("Columns")
        for key in loaded.unique_keys.values():
            name = f"{key.name} [yellow](synthesized)[/yellow]" if key.synthesized else key.name
            keys.add_row(name, key.constraint_type.value, ", ".join(key.column_names))
        console.print(keys)

    if loaded.foreign_keys:
        fks = Table(title="Foreign Keys", show_header=True, header_style="bold")
        fks.add_column("Name")
        fks.add_column("Columns")
        fks.add_column("References")
        fks.add_column("On Delete")
        fks.add_column("On Update")
        for fk in loaded.foreign_keys.values():
            ref_table = fk.referenced_table
            fks.add_row(
                fk.name,
                ", ".join(fk.column_names),
                f"{ref_table.name if ref_table else '?'}({', '.join(fk.referenced_column_names)})",
                fk.delete_rule.value,
                fk.update_rule.value,
            )
        console.print(fks)

    if loaded.indexes:
        indexes = Table(title="Indexes", show_header=True, header_style="bold")
        indexes.add_column("Name")
        indexes.add_column("Unique")
        indexes.add_column("Columns")
        for index in loaded.indexes.values():
            indexes.add_row(
                index.name,
                "yes" if index.unique else "",
                ", ".join(
                    f"{c.column.name}{'' if c.ascending else ' DESC'}" for c in index.columns
                ),
            )
        console.print(indexes)

    _print_warnings(result)
    return 0


def cmd_ddl(args: argparse.Namespace) -> int:
    """Print the CREATE TABLE script of one table.

    Returns:
        0 on success, 1 on load or validation failure.
    """
    try:
        config = _load_config(args)
        result, _ = _load_table(args, config)
    except (FileNotFoundError, CatalogEngineError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        return 1

    if result is None or result.table is None:
        console.print(f"[red]Table '{args.table}' not found or failed to load[/red]")
        return 1

    try:
        actions = create_generator(config).generate_table_ddl(result.table)
    except DDLValidationError as e:
        console.print(f"[bold red]x[/bold red] {e}")
        return 1

    for action in actions:
        console.print(f"[dim]-- {action.title}[/dim]")
        console.print(f"{action.sql};", markup=False, highlight=False)
        console.print()
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
        prog="db-catalog",
        description="Schema catalog inspection and DDL synthesis",
    )
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_DB_CATALOG_PROFILE)"
        ),
    )
    parser.add_argument("--config", help="Path to catalog.toml")
    parser.add_argument("--profile", help="Profile name (overrides the environment)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    p_profiles = subparsers.add_parser("profiles", help="List available profiles")
    p_profiles.set_defaults(func=cmd_profiles)

    p_inspect = subparsers.add_parser("inspect", help="Show a table's structure")
    p_inspect.add_argument("--table", required=True, help="Table name")
    p_inspect.add_argument("--schema", help="Schema (default from catalog.toml)")
    p_inspect.set_defaults(func=cmd_inspect)

    p_ddl = subparsers.add_parser("ddl", help="Print the CREATE TABLE script")
    p_ddl.add_argument("--table", required=True, help="Table name")
    p_ddl.add_argument("--schema", help="Schema (default from catalog.toml)")
    p_ddl.set_defaults(func=cmd_ddl)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
