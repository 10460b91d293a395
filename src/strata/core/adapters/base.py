"""Database adapter base class.

Manifesto:
    The migration core needs exactly two things from a database: execute a
    statement, and run a block inside a transaction that rolls back on any
    error. The abstract base class pins that contract down so the history
    store and applier never depend on a specific driver.

Features:
    - Abstract ``connect()``, ``disconnect()``, ``get_connection()``,
      ``transaction()``
    - ``execute()`` / ``query()`` run in their own short transaction
    - ``table_exists()`` through the adapter's dialect
    - Context-manager protocol for connection lifecycle

Tags:
    strata, database, abstract-base, adapter-pattern

Doc-Types:
    api-reference
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from strata.core.dialect import Dialect, get_dialect
from strata.core.protocols import Connection

from .types import DatabaseConfig, DatabaseType


class DatabaseAdapter(ABC):
    """
    Abstract base class for database adapters.

    Subclasses own one connection for the lifetime of the adapter; a
    migration run uses it exclusively.
    """

    def __init__(self, config: DatabaseConfig):
        self._config = config
        self._connected = False
        self._dialect: Dialect = get_dialect(config.db_type.value)

    @property
    def dialect(self) -> Dialect:
        """SQL dialect for this adapter's database type."""
        return self._dialect

    @property
    def db_type(self) -> DatabaseType:
        """Database type."""
        return self._config.db_type

    @property
    def is_connected(self) -> bool:
        """Whether adapter is connected."""
        return self._connected

    def describe(self) -> str:
        """Credential-free description of the target, for logs."""
        return self._config.describe()

    @abstractmethod
    def connect(self) -> None:
        """Establish connection to database."""
        ...

    @abstractmethod
    def disconnect(self) -> None:
        """Close connection to database."""
        ...

    @abstractmethod
    def get_connection(self) -> Connection:
        """Get the connection, connecting first if needed."""
        ...

    @abstractmethod
    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Context manager for a transaction: commit on success, rollback on error."""
        ...

    def execute(self, sql: str, params: tuple = ()) -> None:
        """Execute one statement in its own transaction."""
        with self.transaction() as conn:
            conn.execute(sql, params)

    def query(self, sql: str, params: tuple = ()) -> list[tuple]:
        """Execute a query and return all rows as tuples."""
        with self.transaction() as conn:
            cursor = conn.execute(sql, params)
            return [tuple(row) for row in cursor.fetchall()]

    def table_exists(self, table: str) -> bool:
        """Whether ``table`` (optionally ``schema.table``) exists."""
        sql, params = self._dialect.table_exists_sql(table)
        return bool(self.query(sql, params))

    def __enter__(self) -> DatabaseAdapter:
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.disconnect()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.describe()!r})"


__all__ = [
    "DatabaseAdapter",
]
