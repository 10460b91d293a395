"""
CLI: ``strata migrate | info | validate | clean`` — migration commands.
"""

from __future__ import annotations

from pathlib import Path

import typer

from strata.cli.utils import console, fail, handle_errors, make_runner, output_items
from strata.core.hashing import ChecksumPolicy

_INFO_COLUMNS = ["version", "description", "script", "state", "installed_on"]


def migrate(
    url: str | None = typer.Option(None, "--url", "-u", help="Database URL"),
    directory: Path | None = typer.Option(None, "--dir", "-d", help="Migrations directory"),
    table: str | None = typer.Option(None, "--table", help="Ledger table name"),
    checksum: ChecksumPolicy | None = typer.Option(None, "--checksum", help="Checksum policy"),
    no_split: bool = typer.Option(False, "--no-split", help="Run each script as one statement"),
    delimiter: str | None = typer.Option(None, "--delimiter", help="Statement delimiter"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Apply pending migrations."""
    with handle_errors():
        with make_runner(
            url, directory, table=table, checksum=checksum, no_split=no_split, delimiter=delimiter
        ) as runner:
            applied = runner.migrate()

    if json_out:
        output_items([_applied_dict(m) for m in applied], as_json=True)
        return
    if not applied:
        console.print("[green]✓[/green] Schema is up to date")
        return
    for migration in applied:
        console.print(f"[green]✓[/green] Applied {migration.script}")
    console.print(f"\n{len(applied)} migration(s) applied")


def info(
    url: str | None = typer.Option(None, "--url", "-u", help="Database URL"),
    directory: Path | None = typer.Option(None, "--dir", "-d", help="Migrations directory"),
    table: str | None = typer.Option(None, "--table", help="Ledger table name"),
    checksum: ChecksumPolicy | None = typer.Option(None, "--checksum", help="Checksum policy"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Show the state of every migration on disk and in the ledger."""
    with handle_errors():
        with make_runner(url, directory, table=table, checksum=checksum) as runner:
            statuses = runner.info()

    output_items(
        statuses,
        as_json=json_out,
        title="Migrations",
        columns=_INFO_COLUMNS,
        empty="No migrations found.",
    )


def validate(
    url: str | None = typer.Option(None, "--url", "-u", help="Database URL"),
    directory: Path | None = typer.Option(None, "--dir", "-d", help="Migrations directory"),
    table: str | None = typer.Option(None, "--table", help="Ledger table name"),
    checksum: ChecksumPolicy | None = typer.Option(None, "--checksum", help="Checksum policy"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Reconcile disk and ledger without applying anything."""
    with handle_errors():
        with make_runner(url, directory, table=table, checksum=checksum) as runner:
            pending = runner.validate()

    if json_out:
        output_items([_applied_dict(m) for m in pending], as_json=True)
        return
    console.print(f"[green]✓[/green] Valid: {len(pending)} pending migration(s)")
    for migration in pending:
        console.print(f"  {migration.script}")


def clean(
    url: str | None = typer.Option(None, "--url", "-u", help="Database URL"),
    table: str | None = typer.Option(None, "--table", help="Ledger table name"),
    checksum: ChecksumPolicy | None = typer.Option(None, "--checksum", help="Checksum policy"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Confirm dropping the ledger"),
) -> None:
    """Drop and recreate the ledger table (schema objects are left alone)."""
    if not yes:
        fail("Refusing to clean the ledger without --yes")
    with handle_errors():
        with make_runner(url, table=table, checksum=checksum) as runner:
            runner.clean(confirm=True)
            table_name = runner.table_name
    console.print(f"[green]✓[/green] Ledger table {table_name} recreated")


def _applied_dict(migration) -> dict:
    return {
        "version": migration.version,
        "description": migration.description,
        "script": migration.script,
        "checksum": migration.checksum,
    }
