"""Database utility commands."""

from __future__ import annotations

import typer
from rich.table import Table

from ..db import prepare_database
from ..errors import StorageError
from ..schema_validation import validate_schema
from .common import console, context_settings

db_app = typer.Typer(help="Database utilities")


@db_app.command("init")
def init(ctx: typer.Context) -> None:
    """Create tables and apply pending migrations."""
    settings = context_settings(ctx)
    db_path = settings.app.database_path
    try:
        version = prepare_database(db_path)
    except StorageError as e:
        console.print(f"[red]✗ Could not initialize {db_path}:[/red] {e}")
        raise typer.Exit(1)
    console.print(f"✓ Database ready at {db_path} (schema version {version})")


@db_app.command("verify")
def verify(
    ctx: typer.Context,
    show_row_counts: bool = typer.Option(
        True,
        "--show-row-counts/--hide-row-counts",
        help="Display row counts for the store tables",
    ),
) -> None:
    """Check the configured database against the expected schema."""
    settings = context_settings(ctx)

    console.rule("Schema Validation")
    result = validate_schema(settings.app.database_path)
    console.print(f"Database: {result.database_url}")

    if result.error or not result.connected:
        console.print(f"[red]✗ Validation failed:[/red] {result.error or 'Unable to connect'}")
        raise typer.Exit(1)

    if result.missing_tables:
        console.print(f"[red]✗ Missing tables:[/red] {', '.join(result.missing_tables)}")
        raise typer.Exit(1)

    if result.missing_columns:
        console.print("[red]✗ Missing columns:[/red]")
        for table_name, columns in sorted(result.missing_columns.items()):
            console.print(f"  - {table_name}: {', '.join(columns)}")
        raise typer.Exit(1)

    if show_row_counts and result.row_counts:
        counts_table = Table(title="Row Counts", show_lines=False)
        counts_table.add_column("Table")
        counts_table.add_column("Rows", justify="right")
        for name, count in sorted(result.row_counts.items()):
            counts_table.add_row(name, str(count))
        console.print(counts_table)

    if result.schema_version is None:
        console.print("[red]✗ schema_version table is empty[/red]")
        raise typer.Exit(1)

    console.print(f"✓ Schema version: {result.schema_version}")
    console.rule("Schema Validation: SUCCESS")
