"""
Migration ledger — the persisted record of applied migrations.

The ledger is one append-only table, by default ``flyway_schema_history``
with Flyway's column layout, so a Flyway ledger of integer-versioned SQL
migrations can be picked up and vice versa (with the CRC32 checksum policy).

Manifesto:
    The ledger is the source of truth for progress:
    - **Append-only:** One row per successful migration, never updated
    - **Same transaction:** A row is written inside the migration's own
      transaction, so a failed migration leaves no row behind
    - **Explicit shape:** Rows are validated on the way out, not trusted

Architecture:
    ::

        HistoryStore(adapter, table_name, policy)
        ┌────────────────────────────────────────────────────────────┐
        │ exists()        dialect existence query                    │
        │ ensure_table()  CREATE TABLE when exists() is False        │
        │ list_applied()  SELECT … ORDER BY installed_rank           │
        │                 → LedgerEntry.from_row(row) per row        │
        │ append(m, ms, conn)  INSERT inside the caller's transaction│
        │ reset()         DROP + CREATE (clean)                      │
        └────────────────────────────────────────────────────────────┘

Guardrails:
    ❌ DON'T: Detect a missing table by catching the driver's error
    ✅ DO: Ask ``exists()`` first

    ❌ DON'T: Write ledger rows outside the migration's transaction
    ✅ DO: Pass the transaction's connection to ``append()``

Tags:
    ledger, migrations, flyway, history, strata

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from strata.core.adapters.base import DatabaseAdapter
from strata.core.config.settings import DEFAULT_INSTALLED_BY, DEFAULT_TABLE_NAME, validate_table_name
from strata.core.errors import InvalidConfigError, LedgerFormatError, StoreUnavailableError, StrataError
from strata.core.hashing import ChecksumPolicy
from strata.core.migrations.descriptor import Migration
from strata.core.protocols import Connection
from strata.logging import get_logger

logger = get_logger(__name__)

LEDGER_COLUMNS = (
    "installed_rank",
    "version",
    "description",
    "type",
    "script",
    "checksum",
    "installed_by",
    "installed_on",
    "execution_time",
    "success",
)

MIGRATION_TYPE = "SQL"


def _require(value: Any, types: type | tuple[type, ...], column: str, row: Any) -> Any:
    # bool is an int subclass; never accept it where a number is expected
    if isinstance(value, bool) and bool not in (types if isinstance(types, tuple) else (types,)):
        raise LedgerFormatError(f"Ledger column {column} has unexpected value {value!r}", row=row)
    if not isinstance(value, types):
        raise LedgerFormatError(
            f"Ledger column {column} has unexpected type {type(value).__name__}",
            row=row,
        )
    return value


def _check_supported(entry: LedgerEntry, row: Any) -> None:
    if entry.type != MIGRATION_TYPE:
        raise LedgerFormatError(
            f"Ledger row {entry.installed_rank} has type {entry.type!r}; only {MIGRATION_TYPE} migrations are supported",
            row=row,
        )
    if not entry.success:
        raise LedgerFormatError(
            f"Ledger records a failed migration {entry.script!r}; remove the row before migrating",
            row=row,
        )


@dataclass(eq=False)
class LedgerEntry:
    """One row of the ledger."""

    installed_rank: int
    version: int
    description: str
    script: str
    checksum: int | str | None
    installed_by: str
    installed_on: datetime | str | None
    execution_time: int
    success: bool
    type: str = MIGRATION_TYPE

    @property
    def identity(self) -> tuple[int, str, str, int | str | None]:
        return (self.version, self.description, self.script, self.checksum)

    def __eq__(self, other: Any) -> bool:
        if not hasattr(other, "identity"):
            return NotImplemented
        return self.identity == other.identity

    def __hash__(self) -> int:
        return hash(self.identity)

    @classmethod
    def from_row(
        cls,
        row: tuple | list,
        policy: ChecksumPolicy | str = ChecksumPolicy.CRC32,
    ) -> LedgerEntry:
        """
        Build an entry from a row selected in ``LEDGER_COLUMNS`` order.

        Validates the column count and every column's type. The text
        ``version`` column is converted to ``int``; ``success`` accepts the
        0/1 integers SQLite returns.

        Raises:
            LedgerFormatError: wrong column count, wrong types, or a row
                without a numeric version.
        """
        row = tuple(row)
        if len(row) != len(LEDGER_COLUMNS):
            raise LedgerFormatError(
                f"Ledger row has {len(row)} columns, expected {len(LEDGER_COLUMNS)}",
                row=row,
            )
        (
            installed_rank,
            version,
            description,
            type_,
            script,
            checksum,
            installed_by,
            installed_on,
            execution_time,
            success,
        ) = row

        _require(installed_rank, int, "installed_rank", row)
        _require(version, (str, int), "version", row)
        try:
            version = int(version)
        except ValueError:
            raise LedgerFormatError(
                f"Ledger version {version!r} is not an integer; dotted versions are not supported",
                row=row,
            ) from None
        _require(description, str, "description", row)
        _require(type_, str, "type", row)
        _require(script, str, "script", row)
        _require(installed_by, str, "installed_by", row)
        if installed_on is not None:
            _require(installed_on, (datetime, str), "installed_on", row)
        _require(execution_time, int, "execution_time", row)
        if success not in (True, False, 0, 1):
            raise LedgerFormatError(f"Ledger column success has unexpected value {success!r}", row=row)

        if checksum is not None:
            _require(checksum, (int, str), "checksum", row)
            try:
                checksum = str(checksum) if ChecksumPolicy(policy) is ChecksumPolicy.SHA256 else int(checksum)
            except ValueError:
                raise LedgerFormatError(f"Ledger checksum {checksum!r} is not an integer", row=row) from None

        return cls(
            installed_rank=installed_rank,
            version=version,
            description=description,
            script=script,
            checksum=checksum,
            installed_by=installed_by,
            installed_on=installed_on,
            execution_time=execution_time,
            success=bool(success),
            type=type_,
        )


class HistoryStore:
    """
    Reads and writes the ledger table through a database adapter.

    Parameters
    ----------
    adapter
        Database adapter the ledger lives in.
    table_name
        Ledger table, optionally schema-qualified.
    policy
        Checksum policy; decides the ``checksum`` column type and how stored
        checksums are read back.
    installed_by
        Value written to ``installed_by``.
    """

    def __init__(
        self,
        adapter: DatabaseAdapter,
        table_name: str = DEFAULT_TABLE_NAME,
        *,
        policy: ChecksumPolicy | str = ChecksumPolicy.CRC32,
        installed_by: str = DEFAULT_INSTALLED_BY,
    ) -> None:
        try:
            validate_table_name(table_name)
        except ValueError as e:
            raise InvalidConfigError("table_name", table_name, str(e)) from e
        self._adapter = adapter
        self._table = table_name
        self._policy = ChecksumPolicy(policy)
        self._installed_by = installed_by

    @property
    def table_name(self) -> str:
        return self._table

    @property
    def policy(self) -> ChecksumPolicy:
        return self._policy

    def create_table_sql(self) -> str:
        """DDL for the ledger table in the adapter's dialect."""
        dialect = self._adapter.dialect
        return f"""
            CREATE TABLE {self._table} (
                installed_rank INTEGER NOT NULL PRIMARY KEY,
                version VARCHAR(50),
                description VARCHAR(200) NOT NULL,
                type VARCHAR(20) NOT NULL,
                script VARCHAR(1000) NOT NULL,
                checksum {dialect.checksum_type(self._policy)},
                installed_by VARCHAR(100) NOT NULL,
                installed_on TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                execution_time INTEGER NOT NULL,
                success {dialect.boolean_type()} NOT NULL
            )
        """

    @contextmanager
    def _unavailable_on_error(self, action: str) -> Iterator[None]:
        """Re-raise driver errors as ``StoreUnavailableError``."""
        try:
            yield
        except StrataError:
            raise
        except Exception as e:
            raise StoreUnavailableError(
                f"Unable to {action} ledger table {self._table}: {e}",
                table=self._table,
                cause=e,
            ) from e

    def exists(self) -> bool:
        """Whether the ledger table exists."""
        with self._unavailable_on_error("check"):
            return self._adapter.table_exists(self._table)

    def ensure_table(self) -> bool:
        """Create the ledger table if absent. Returns ``True`` when it was created."""
        if self.exists():
            return False
        with self._unavailable_on_error("create"):
            self._adapter.execute(self.create_table_sql())
        logger.info("ledger.created", table=self._table, checksum_policy=self._policy.value)
        return True

    def list_applied(self) -> list[LedgerEntry]:
        """All ledger entries ordered by ``installed_rank``."""
        sql = f"SELECT {', '.join(LEDGER_COLUMNS)} FROM {self._table} ORDER BY installed_rank ASC"
        with self._unavailable_on_error("read"):
            rows = self._adapter.query(sql)
        entries = []
        for row in rows:
            # repeatable migrations carry no version and are not ours to track
            if len(row) == len(LEDGER_COLUMNS) and row[1] is None:
                logger.debug("ledger.row_skipped", installed_rank=row[0], script=row[4])
                continue
            entry = LedgerEntry.from_row(row, self._policy)
            _check_supported(entry, row)
            entries.append(entry)
        return entries

    def next_rank(self, conn: Connection) -> int:
        """The rank the next appended entry gets: ``max(installed_rank) + 1``."""
        cursor = conn.execute(f"SELECT MAX(installed_rank) FROM {self._table}")
        row = cursor.fetchone()
        return (row[0] or 0) + 1 if row else 1

    def append(self, migration: Migration, execution_time: float, conn: Connection) -> LedgerEntry:
        """
        Record ``migration`` as applied.

        Must be called with the connection of the migration's open
        transaction so the row commits or rolls back with the migration.
        ``execution_time`` is in milliseconds and floored to 1.
        """
        with self._unavailable_on_error("write to"):
            rank = self.next_rank(conn)
            entry = LedgerEntry(
                installed_rank=rank,
                version=migration.version,
                description=migration.description,
                script=migration.script,
                checksum=migration.checksum,
                installed_by=self._installed_by,
                installed_on=None,
                execution_time=max(1, int(execution_time)),
                success=True,
            )
            columns = [c for c in LEDGER_COLUMNS if c != "installed_on"]
            placeholders = self._adapter.dialect.placeholders(len(columns))
            conn.execute(
                f"INSERT INTO {self._table} ({', '.join(columns)}) VALUES ({placeholders})",
                (
                    entry.installed_rank,
                    str(entry.version),
                    entry.description,
                    entry.type,
                    entry.script,
                    entry.checksum,
                    entry.installed_by,
                    entry.execution_time,
                    entry.success,
                ),
            )
        return entry

    def reset(self) -> None:
        """Drop and recreate the ledger table. Schema objects are untouched."""
        with self._unavailable_on_error("reset"):
            with self._adapter.transaction() as conn:
                conn.execute(f"DROP TABLE IF EXISTS {self._table}")
                conn.execute(self.create_table_sql())
        logger.warning("ledger.reset", table=self._table)


__all__ = [
    "HistoryStore",
    "LEDGER_COLUMNS",
    "LedgerEntry",
]
