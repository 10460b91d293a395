"""
CLI layer for strata.

A Typer application whose commands delegate to
:class:`strata.core.migrations.MigrationRunner`. This package handles only
terminal transport: argument parsing, coloured output, and exit codes.

Entry point::

    strata --help
"""

from strata.cli.app import app

__all__ = ["app"]
