"""SQLite database adapter."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from strata.core.errors import DatabaseConnectionError, DatabaseError
from strata.core.protocols import Connection

from .base import DatabaseAdapter
from .types import DatabaseConfig, DatabaseType


class SQLiteAdapter(DatabaseAdapter):
    """
    SQLite database adapter.

    Uses the built-in sqlite3 module. Transactions are opened with an
    explicit ``BEGIN`` so that DDL inside a migration is rolled back together
    with everything else when a later statement fails.

    Pass ``connection=`` to reuse a connection owned by the caller; it is
    left open on ``disconnect()``.
    """

    def __init__(
        self,
        path: str = ":memory:",
        *,
        connection: sqlite3.Connection | None = None,
        readonly: bool = False,
        timeout: float = 5.0,
        **kwargs: Any,
    ):
        config = DatabaseConfig(
            db_type=DatabaseType.SQLITE,
            path=path,
            readonly=readonly,
            options=kwargs,
        )
        super().__init__(config)
        self._timeout = timeout
        self._conn: sqlite3.Connection | None = connection
        self._owns_connection = connection is None
        self._connected = connection is not None

    def connect(self) -> None:
        """Connect to SQLite database."""
        if self._conn is not None:
            return

        path = self._config.path or ":memory:"
        uri = path.startswith("file:")
        try:
            self._conn = sqlite3.connect(
                path,
                timeout=self._timeout,
                uri=uri,
                isolation_level=None,
            )
            self._conn.execute("PRAGMA foreign_keys = ON")
            if self._config.readonly:
                self._conn.execute("PRAGMA query_only = ON")
            self._connected = True
        except sqlite3.Error as e:
            raise DatabaseConnectionError(
                f"Failed to connect to SQLite: {e}",
                cause=e,
            ) from e

    def disconnect(self) -> None:
        """Close SQLite connection (only if this adapter opened it)."""
        if self._conn is not None and self._owns_connection:
            self._conn.close()
        self._conn = None
        self._connected = False

    def get_connection(self) -> Connection:
        """Get the SQLite connection."""
        if self._conn is None:
            self.connect()
        return self._conn

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Transaction context manager."""
        conn = self.get_connection()
        if conn.in_transaction:
            raise DatabaseError(
                "SQLite connection already has an open transaction; "
                "commit or roll back before running migrations"
            )
        conn.execute("BEGIN")
        # commit() and rollback() are no-ops on autocommit=True connections
        try:
            yield conn
        except BaseException:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")


__all__ = [
    "SQLiteAdapter",
]
