"""
CLI utility helpers — output formatting, error reporting, runner construction.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict
from pathlib import Path
from typing import Any

try:
    import typer
    from rich.console import Console
    from rich.markup import escape
    from rich.table import Table
except ImportError as e:  # pragma: no cover
    raise SystemExit("Missing CLI deps.  Install with:  pip install strata-migrate") from e

from pydantic import ValidationError

from strata.core.config import get_settings
from strata.core.errors import StrataError
from strata.core.migrations import MigrationRunner

console = Console()
err_console = Console(stderr=True)


# ── Runner helper ────────────────────────────────────────────────────────


def make_runner(
    url: str | None = None,
    directory: Path | None = None,
    *,
    table: str | None = None,
    checksum: str | None = None,
    no_split: bool = False,
    delimiter: str | None = None,
) -> MigrationRunner:
    """Create a ``MigrationRunner`` from settings, with CLI options applied on top."""
    return MigrationRunner.from_settings(
        get_settings(),
        database_url=url,
        migrations_dir=directory,
        table_name=table,
        checksum_policy=checksum,
        split_statements=False if no_split else None,
        delimiter=delimiter,
    )


@contextmanager
def handle_errors() -> Iterator[None]:
    """Print a ``StrataError`` or settings error to stderr and exit with status 1."""
    try:
        yield
    except StrataError as e:
        fail(e)
    except ValidationError as e:
        fail(f"Invalid configuration: {e}")


def fail(error: StrataError | str) -> None:
    """Report ``error`` and exit with status 1."""
    code = type(error).__name__ if isinstance(error, StrataError) else "ERROR"
    msg = error.message if isinstance(error, StrataError) else error
    err_console.print(f"[bold red]Error[/bold red] ({code}): {escape(str(msg))}", highlight=False)
    raise typer.Exit(code=1)


# ── Output helpers ───────────────────────────────────────────────────────


def _to_dict(obj: Any) -> dict[str, Any]:
    """Convert dataclass / pydantic model / dict to plain dict."""
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    if isinstance(obj, dict):
        return obj
    return {"value": str(obj)}


def output_items(
    items: list[Any],
    *,
    as_json: bool = False,
    title: str = "",
    columns: list[str] | None = None,
    empty: str = "No items.",
) -> None:
    """Render a list of records as JSON or a Rich table."""
    rows = [_to_dict(item) for item in items]

    if as_json:
        console.print_json(json.dumps(rows, default=str))
        return

    if not rows:
        console.print(f"[dim]{empty}[/dim]")
        return

    _print_table(rows, title=title, columns=columns)


# ── Private helpers ──────────────────────────────────────────────────────


def _print_table(rows: list[dict[str, Any]], *, title: str = "", columns: list[str] | None = None) -> None:
    """Render dicts as a Rich table, optionally restricted to ``columns``."""
    columns = columns or list(rows[0])
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in columns:
        table.add_column(col, overflow="fold")
    for row in rows:
        table.add_row(*("" if row.get(col) is None else str(row.get(col)) for col in columns))
    console.print(table)
