"""SQLAlchemy adapter — run migrations through an ``Engine`` or ``Connection``.

Lets strata target any database SQLAlchemy has a dialect for among the
supported ledger dialects (SQLite, PostgreSQL, MySQL/MariaDB), using
whichever DB-API driver the engine was built with.

Parameterised ledger SQL goes through ``exec_driver_sql`` with the driver's
positional paramstyle; migration statements are executed with
``no_parameters`` so ``%`` and ``:name`` in script bodies are passed through
untouched.

Note:
    The ``pysqlite`` driver never sends ``BEGIN`` before DDL, so on SQLite
    the adapter issues it itself once ``Connection.begin()`` has started the
    SQLAlchemy transaction. Engines that already emit ``BEGIN`` through the
    pysqlite event-listener recipe are detected and left alone.

Tags:
    strata, database, sqlalchemy, adapter-pattern
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Connection as SAConnection
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from strata.core.dialect import split_table_name
from strata.core.errors import ConfigError, DatabaseConnectionError, DatabaseError
from strata.core.protocols import Connection

from .base import DatabaseAdapter
from .types import DatabaseConfig, DatabaseType

_BACKENDS = {
    "sqlite": DatabaseType.SQLITE,
    "postgresql": DatabaseType.POSTGRESQL,
    "mysql": DatabaseType.MYSQL,
    "mariadb": DatabaseType.MYSQL,
}


class _DriverSQLConnection:
    """``execute()`` on top of ``Connection.exec_driver_sql``."""

    def __init__(self, conn: SAConnection):
        self._conn = conn

    def execute(self, sql: str, params: tuple = ()) -> Any:
        if params:
            return self._conn.exec_driver_sql(sql, tuple(params))
        return self._conn.exec_driver_sql(sql, execution_options={"no_parameters": True})

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()


class SQLAlchemyAdapter(DatabaseAdapter):
    """
    Adapter over a SQLAlchemy ``Engine``, ``Connection`` or URL.

    Usage:
        adapter = SQLAlchemyAdapter(url="postgresql+psycopg2://app@db/app")
        adapter = SQLAlchemyAdapter(engine=engine)
        adapter = SQLAlchemyAdapter(connection=engine.connect())
    """

    def __init__(
        self,
        *,
        url: str | None = None,
        engine: Engine | None = None,
        connection: SAConnection | None = None,
        **engine_kwargs: Any,
    ):
        if sum(x is not None for x in (url, engine, connection)) != 1:
            raise ConfigError("SQLAlchemyAdapter needs exactly one of url=, engine= or connection=")

        if url is not None:
            try:
                engine = create_engine(url, **engine_kwargs)
            except (SQLAlchemyError, ImportError, ValueError) as e:
                raise ConfigError(f"Cannot create engine for {url!r}: {e}", cause=e) from e

        self._engine: Engine | None = engine
        self._conn: SAConnection | None = connection
        self._owns_connection = connection is None

        backend = (engine or connection).dialect.name
        if backend not in _BACKENDS:
            raise ConfigError(
                f"Unsupported SQLAlchemy dialect for the ledger: {backend!r}. "
                f"Supported: {sorted(_BACKENDS)}"
            )
        sa_url = (engine or connection.engine).url
        super().__init__(
            DatabaseConfig(
                db_type=_BACKENDS[backend],
                path=sa_url.database if backend == "sqlite" else None,
                host=sa_url.host or "localhost",
                port=sa_url.port or 0,
                database=sa_url.database or "",
            )
        )
        self._connected = connection is not None

    def describe(self) -> str:
        url = (self._engine or self._conn.engine).url
        return url.render_as_string(hide_password=True)

    def connect(self) -> None:
        """Open a connection from the engine."""
        if self._conn is not None:
            return
        try:
            self._conn = self._engine.connect()
            self._connected = True
        except SQLAlchemyError as e:
            raise DatabaseConnectionError(
                f"Failed to connect through SQLAlchemy: {e}",
                cause=e,
            ) from e

    def disconnect(self) -> None:
        """Close the connection (only if this adapter opened it)."""
        if self._conn is not None and self._owns_connection:
            self._conn.close()
        self._conn = None
        self._connected = False

    def get_connection(self) -> Connection:
        if self._conn is None:
            self.connect()
        return _DriverSQLConnection(self._conn)

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Transaction context manager built on ``Connection.begin()``."""
        conn = self.get_connection()
        if self._conn.in_transaction():
            raise DatabaseError(
                "SQLAlchemy connection already has an open transaction; "
                "commit or roll back before running migrations"
            )
        with self._conn.begin():
            if self.db_type is DatabaseType.SQLITE and not self._driver_in_transaction():
                self._conn.exec_driver_sql("BEGIN")
            yield conn

    def _driver_in_transaction(self) -> bool:
        raw = self._conn.connection.dbapi_connection
        return bool(getattr(raw, "in_transaction", False))

    def table_exists(self, table: str) -> bool:
        """Whether ``table`` exists, via the SQLAlchemy inspector."""
        if self._conn is None:
            self.connect()
        schema, name = split_table_name(table)
        exists = inspect(self._conn).has_table(name, schema=schema)
        # The inspector autobegins; close that transaction before the next begin()
        if self._conn.in_transaction():
            self._conn.rollback()
        return exists


__all__ = [
    "SQLAlchemyAdapter",
]
