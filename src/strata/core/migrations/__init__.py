"""Versioned SQL migrations.

Architecture::

    descriptor.py   V<n>__<desc>.sql files → Migration, discovery
    statements.py   Script body → statements
    history.py      Ledger table (flyway_schema_history) → LedgerEntry
    reconciler.py   disk × ledger → pending, or a fatal error
    applier.py      pending → one transaction per migration
    runner.py       MigrationRunner, run_migrations(), clean()
"""

from .applier import Applier
from .descriptor import FILENAME_PATTERN, Migration, discover_migrations, is_migration_filename, parse_filename
from .history import LEDGER_COLUMNS, HistoryStore, LedgerEntry
from .reconciler import MigrationState, MigrationStatus, classify, reconcile
from .runner import MigrationRunner, clean, run_migrations
from .statements import split_statements

__all__ = [
    "Applier",
    "FILENAME_PATTERN",
    "HistoryStore",
    "LEDGER_COLUMNS",
    "LedgerEntry",
    "Migration",
    "MigrationRunner",
    "MigrationState",
    "MigrationStatus",
    "classify",
    "clean",
    "discover_migrations",
    "is_migration_filename",
    "parse_filename",
    "reconcile",
    "run_migrations",
    "split_statements",
]
