"""
Root Typer application for the strata CLI.
"""

from __future__ import annotations

import sys

try:
    import typer
    from typer import Typer
except ImportError:  # pragma: no cover
    print("typer is required for the CLI.  Install with:  pip install strata-migrate")
    sys.exit(1)

from strata.cli.utils import handle_errors
from strata.core.config import get_settings
from strata.logging import configure_logging

app = Typer(
    name="strata",
    help="strata — versioned SQL migrations with a Flyway-compatible ledger.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from strata import __version__

        typer.echo(f"strata {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING or ERROR"),
) -> None:
    """strata CLI — apply, inspect and validate SQL migrations."""
    with handle_errors():
        settings = get_settings()
    configure_logging(level=log_level or settings.log_level, format=settings.log_format, force=True)


# ── Sub-command registration ─────────────────────────────────────────────

from strata.cli import migrate as migrate_cmds  # noqa: E402
from strata.cli.config import app as config_app  # noqa: E402

app.command("migrate")(migrate_cmds.migrate)
app.command("info")(migrate_cmds.info)
app.command("validate")(migrate_cmds.validate)
app.command("clean")(migrate_cmds.clean)
app.add_typer(config_app, name="config", help="Configuration inspection.")
