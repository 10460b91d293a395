"""strata: versioned SQL migrations with a Flyway-compatible ledger.

Quick start::

    import sqlite3
    from strata import run_migrations

    conn = sqlite3.connect("app.db")
    for migration in run_migrations(conn, "migrations"):
        print(migration.script)
"""

from strata.core.errors import (
    ChecksumMismatchError,
    DuplicateMigrationError,
    MalformedFilenameError,
    MalformedMigrationError,
    OutOfOrderMigrationError,
    StatementExecutionError,
    StoreUnavailableError,
    StrataError,
)
from strata.core.hashing import ChecksumPolicy
from strata.core.migrations import (
    LedgerEntry,
    Migration,
    MigrationRunner,
    MigrationState,
    MigrationStatus,
    clean,
    run_migrations,
)

__version__ = "0.3.0"

__all__ = [
    "ChecksumMismatchError",
    "ChecksumPolicy",
    "DuplicateMigrationError",
    "LedgerEntry",
    "MalformedFilenameError",
    "MalformedMigrationError",
    "Migration",
    "MigrationRunner",
    "MigrationState",
    "MigrationStatus",
    "OutOfOrderMigrationError",
    "StatementExecutionError",
    "StoreUnavailableError",
    "StrataError",
    "__version__",
    "clean",
    "run_migrations",
]
