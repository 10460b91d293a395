"""PostgreSQL database adapter."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from strata.core.errors import ConfigError, DatabaseConnectionError, DatabaseError
from strata.core.protocols import Connection

from .base import DatabaseAdapter
from .types import DatabaseConfig, DatabaseType


class _CursorConnection:
    """Gives a psycopg2 connection the ``execute()`` shape of sqlite3."""

    def __init__(self, conn: Any):
        self._conn = conn

    def execute(self, sql: str, params: tuple = ()) -> Any:
        cursor = self._conn.cursor()
        # No parameters means no %-interpolation, so literal % in DDL survives
        cursor.execute(sql, params or None)
        return cursor

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()


class PostgreSQLAdapter(DatabaseAdapter):
    """
    PostgreSQL database adapter.

    Uses psycopg2, imported at connect time. PostgreSQL DDL is transactional,
    so a failed migration leaves no partial schema change behind.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 5432,
        database: str = "",
        username: str | None = None,
        password: str | None = None,
        *,
        dsn: str | None = None,
        connection: Any = None,
        connect_timeout: int = 10,
        **kwargs: Any,
    ):
        config = DatabaseConfig(
            db_type=DatabaseType.POSTGRESQL,
            host=host,
            port=port,
            database=database,
            username=username,
            password=password,
            dsn=dsn,
            connect_timeout=connect_timeout,
            options=kwargs,
        )
        super().__init__(config)
        self._conn: Any = connection
        self._owns_connection = connection is None
        self._connected = connection is not None

    def connect(self) -> None:
        """Connect to PostgreSQL database."""
        if self._conn is not None:
            return

        try:
            import psycopg2
        except ImportError:
            raise ConfigError(
                "psycopg2 is required for PostgreSQL. Install with: pip install strata-migrate[postgresql]"
            ) from None

        try:
            if self._config.dsn:
                self._conn = psycopg2.connect(self._config.dsn, **self._config.options)
            else:
                self._conn = psycopg2.connect(
                    host=self._config.host,
                    port=self._config.port,
                    dbname=self._config.database,
                    user=self._config.username,
                    password=self._config.password,
                    connect_timeout=self._config.connect_timeout,
                    **self._config.options,
                )
            self._connected = True
        except psycopg2.Error as e:
            raise DatabaseConnectionError(
                f"Failed to connect to PostgreSQL: {e}",
                cause=e,
            ) from e

    def disconnect(self) -> None:
        """Close PostgreSQL connection (only if this adapter opened it)."""
        if self._conn is not None and self._owns_connection:
            self._conn.close()
        self._conn = None
        self._connected = False

    def get_connection(self) -> Connection:
        """Get the connection wrapped with an ``execute()`` method."""
        if self._conn is None:
            self.connect()
        return _CursorConnection(self._conn)

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Transaction context manager."""
        conn = self.get_connection()
        if getattr(self._conn, "autocommit", False):
            raise DatabaseError(
                "PostgreSQL connection is in autocommit mode; migrations need transactions"
            )
        try:
            yield conn
        except BaseException:
            conn.rollback()
            raise
        conn.commit()


__all__ = [
    "PostgreSQLAdapter",
]
