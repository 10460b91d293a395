"""Database adapter registry and factories.

Manifesto:
    Callers should never hard-code adapter class names. The registry maps
    database type names to adapter classes; ``adapter_from_url()`` turns a
    configured URL into an adapter and ``wrap_connection()`` turns whatever
    live connection a caller already holds into one.

Features:
    - ``AdapterRegistry`` singleton with pre-registered defaults
    - ``register()`` for custom adapters
    - ``get_adapter()`` factory: type name + kwargs → adapter
    - ``adapter_from_url()``: ``sqlite:///path``, ``postgresql://…``, or any
      SQLAlchemy URL
    - ``wrap_connection()``: ``sqlite3.Connection``, SQLAlchemy ``Engine`` /
      ``Connection``, psycopg2 connection, or an existing adapter

Tags:
    strata, database, registry, factory, singleton

Doc-Types:
    api-reference
"""

from __future__ import annotations

import sqlite3
from typing import Any

from sqlalchemy.engine import Connection as SAConnection
from sqlalchemy.engine import Engine

from strata.core.errors import ConfigError

from .base import DatabaseAdapter
from .postgresql import PostgreSQLAdapter
from .sqla import SQLAlchemyAdapter
from .sqlite import SQLiteAdapter
from .types import DatabaseType


class AdapterRegistry:
    """
    Registry for database adapter factories.

    Pre-registered adapters:
    - ``sqlite`` — :class:`SQLiteAdapter`
    - ``postgresql`` / ``postgres`` — :class:`PostgreSQLAdapter`
    - ``sqlalchemy`` — :class:`SQLAlchemyAdapter`
    """

    def __init__(self):
        self._factories: dict[str, type[DatabaseAdapter]] = {}
        self._register_defaults()

    def _register_defaults(self) -> None:
        """Register default adapters."""
        self._factories["sqlite"] = SQLiteAdapter
        self._factories["postgresql"] = PostgreSQLAdapter
        self._factories["postgres"] = PostgreSQLAdapter  # Alias
        self._factories["sqlalchemy"] = SQLAlchemyAdapter

    def register(self, name: str, adapter_class: type[DatabaseAdapter]) -> None:
        """Register an adapter factory."""
        self._factories[name.lower()] = adapter_class

    def create(self, name: str, **kwargs: Any) -> DatabaseAdapter:
        """Create an adapter by name."""
        name = name.lower()
        if name not in self._factories:
            raise ConfigError(f"Unknown database adapter: {name}")
        return self._factories[name](**kwargs)


# Global registry
adapter_registry = AdapterRegistry()


def get_adapter(
    db_type: DatabaseType | str,
    **kwargs: Any,
) -> DatabaseAdapter:
    """
    Get a database adapter by type.

    Usage:
        adapter = get_adapter(DatabaseType.SQLITE, path="data.db")
        adapter = get_adapter("postgresql", host="localhost", database="app")
    """
    if isinstance(db_type, DatabaseType):
        name = db_type.value
    else:
        name = db_type
    return adapter_registry.create(name, **kwargs)


def adapter_from_url(url: str) -> DatabaseAdapter:
    """
    Build an adapter from a database URL.

    - ``sqlite://`` or ``sqlite:///:memory:`` → in-memory :class:`SQLiteAdapter`
    - ``sqlite:///relative.db`` / ``sqlite:////abs/path.db`` → :class:`SQLiteAdapter`
    - ``postgresql://…`` / ``postgres://…`` → :class:`PostgreSQLAdapter` (libpq DSN)
    - anything else, including ``dialect+driver://…`` → :class:`SQLAlchemyAdapter`
    """
    if "://" not in url:
        raise ConfigError(f"Not a database URL: {url!r}")
    scheme, rest = url.split("://", 1)
    scheme = scheme.lower()

    if scheme == "sqlite":
        path = rest[1:] if rest.startswith("/") else rest
        return get_adapter(DatabaseType.SQLITE, path=path or ":memory:")
    if scheme in ("postgresql", "postgres"):
        return get_adapter(DatabaseType.POSTGRESQL, dsn=url)
    return SQLAlchemyAdapter(url=url)


def wrap_connection(conn: Any) -> DatabaseAdapter:
    """Adapt a caller-owned live connection; adapters pass through unchanged."""
    if isinstance(conn, DatabaseAdapter):
        return conn
    if isinstance(conn, sqlite3.Connection):
        return SQLiteAdapter(connection=conn)
    if isinstance(conn, Engine):
        return SQLAlchemyAdapter(engine=conn)
    if isinstance(conn, SAConnection):
        return SQLAlchemyAdapter(connection=conn)
    if type(conn).__module__.startswith("psycopg2"):
        return PostgreSQLAdapter(connection=conn)
    raise ConfigError(f"Unsupported connection type: {type(conn).__name__}")


__all__ = [
    "AdapterRegistry",
    "adapter_registry",
    "get_adapter",
    "adapter_from_url",
    "wrap_connection",
]
