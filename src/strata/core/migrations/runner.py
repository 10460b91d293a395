"""SQL migration runner.

Ties discovery, the ledger, reconciliation and the applier together into
the operations a caller actually runs: ``migrate``, ``validate``, ``info``
and ``clean``.

Example::

    import sqlite3
    from strata import run_migrations

    conn = sqlite3.connect("app.db")
    applied = run_migrations(conn, "migrations")
    print(f"Applied {len(applied)} migrations")
"""

from __future__ import annotations

import uuid
from pathlib import Path
from typing import Any

from strata.core.adapters.base import DatabaseAdapter
from strata.core.adapters.registry import adapter_from_url, wrap_connection
from strata.core.config.settings import DEFAULT_INSTALLED_BY, DEFAULT_TABLE_NAME, StrataSettings
from strata.core.errors import ConfirmationRequiredError
from strata.core.hashing import ChecksumPolicy
from strata.core.migrations.applier import Applier
from strata.core.migrations.descriptor import Migration, discover_migrations
from strata.core.migrations.history import HistoryStore, LedgerEntry
from strata.core.migrations.reconciler import MigrationStatus, classify, reconcile
from strata.logging import get_logger, push_context

logger = get_logger(__name__)


class MigrationRunner:
    """Applies versioned SQL migrations from a directory.

    Parameters
    ----------
    connection
        A :class:`DatabaseAdapter`, ``sqlite3.Connection``, SQLAlchemy
        ``Engine`` / ``Connection`` or psycopg2 connection.
    directory
        Directory containing ``V<n>__<description>.sql`` files.
    table_name
        Ledger table name.
    checksum_policy
        ``crc32`` (Flyway-compatible) or ``sha256``.
    split_statements
        Split script bodies on ``delimiter`` before executing.
    """

    def __init__(
        self,
        connection: Any,
        directory: Path | str,
        *,
        table_name: str = DEFAULT_TABLE_NAME,
        checksum_policy: ChecksumPolicy | str = ChecksumPolicy.CRC32,
        split_statements: bool = True,
        delimiter: str = ";",
        installed_by: str = DEFAULT_INSTALLED_BY,
    ) -> None:
        self.adapter: DatabaseAdapter = wrap_connection(connection)
        self.directory = Path(directory)
        self.policy = ChecksumPolicy(checksum_policy)
        self.store = HistoryStore(
            self.adapter,
            table_name,
            policy=self.policy,
            installed_by=installed_by,
        )
        self.applier = Applier(
            self.adapter,
            self.store,
            split_statements=split_statements,
            delimiter=delimiter,
        )

    @classmethod
    def from_settings(cls, settings: StrataSettings, **overrides: Any) -> MigrationRunner:
        """Build a runner (and its adapter) from settings; ``overrides`` win."""
        values = {
            "database_url": settings.database_url,
            "migrations_dir": settings.migrations_dir,
            "table_name": settings.table_name,
            "checksum_policy": settings.checksum_policy,
            "split_statements": settings.split_statements,
            "delimiter": settings.delimiter,
            "installed_by": settings.installed_by,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        adapter = adapter_from_url(values.pop("database_url"))
        return cls(adapter, values.pop("migrations_dir"), **values)

    @property
    def table_name(self) -> str:
        return self.store.table_name

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def discover(self) -> list[Migration]:
        """Migrations on disk, sorted by version."""
        return discover_migrations(self.directory, self.policy)

    def applied(self) -> list[LedgerEntry]:
        """Ledger entries; empty when the ledger table does not exist yet."""
        if not self.store.exists():
            return []
        return self.store.list_applied()

    def migrate(self) -> list[Migration]:
        """Apply every pending migration and return them in order.

        Raises the first reconciliation or execution error. Nothing is
        applied when reconciliation fails.
        """
        token = push_context(
            run_id=uuid.uuid4().hex[:12],
            target=self.adapter.describe(),
            table=self.table_name,
        )
        try:
            self.store.ensure_table()
            disk = self.discover()
            applied = self.store.list_applied()
            pending = reconcile(disk, applied)
            if not pending:
                logger.info("migration.up_to_date", discovered=len(disk), applied=len(applied))
                return []
            logger.info("migration.pending", count=len(pending), first=pending[0].script)
            result = self.applier.apply(pending)
            logger.info("migration.complete", applied=len(result))
            return result
        finally:
            token.restore()

    def validate(self) -> list[Migration]:
        """Reconcile without applying; returns what ``migrate`` would apply."""
        return reconcile(self.discover(), self.applied())

    def info(self) -> list[MigrationStatus]:
        """Status of every migration on disk or in the ledger."""
        return classify(self.discover(), self.applied())

    def clean(self, confirm: bool = False) -> None:
        """Drop and recreate the ledger table. User tables are untouched.

        Requires ``confirm=True``.
        """
        if not confirm:
            raise ConfirmationRequiredError(
                f"Refusing to clean ledger table {self.table_name} without confirmation"
            )
        self.store.reset()

    def close(self) -> None:
        """Disconnect the adapter (caller-owned connections stay open)."""
        self.adapter.disconnect()

    def __enter__(self) -> MigrationRunner:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def run_migrations(connection: Any, directory: Path | str, **options: Any) -> list[Migration]:
    """Apply pending migrations in ``directory``; see :class:`MigrationRunner`."""
    return MigrationRunner(connection, directory, **options).migrate()


def clean(
    connection: Any,
    *,
    confirm: bool = False,
    table_name: str = DEFAULT_TABLE_NAME,
    checksum_policy: ChecksumPolicy | str = ChecksumPolicy.CRC32,
) -> None:
    """Drop and recreate the ledger table; requires ``confirm=True``."""
    if not confirm:
        raise ConfirmationRequiredError(
            f"Refusing to clean ledger table {table_name} without confirmation"
        )
    store = HistoryStore(wrap_connection(connection), table_name, policy=checksum_policy)
    store.reset()


__all__ = [
    "MigrationRunner",
    "clean",
    "run_migrations",
]
