"""SQL dialect abstraction for the ledger table.

The ledger is the only SQL strata writes itself; migration bodies are
executed verbatim. A ``Dialect`` supplies the few backend-specific fragments
the ledger needs: parameter placeholders, column types and the query that
tells whether a table exists.

Manifesto:
    - **One interface:** History store code never branches on the backend
    - **Zero coupling:** Dialects never import a database driver
    - **Explicit existence check:** "Is the ledger there?" is a query, not a
      caught exception

Architecture::

    ┌──────────┐ ┌──────────────┐ ┌──────────────┐
    │ SQLite   │ │ PostgreSQL   │ │ MySQL        │
    │ ?, ?, ?  │ │ %s, %s, %s   │ │ %s, %s, %s   │
    │ sqlite_  │ │ information_ │ │ information_ │
    │ master   │ │ schema       │ │ schema       │
    └──────────┘ └──────────────┘ └──────────────┘

Examples:
    >>> d = get_dialect("sqlite")
    >>> d.placeholders(3)
    '?, ?, ?'
    >>> d.table_exists_sql("flyway_schema_history")[1]
    ('flyway_schema_history',)

Tags:
    dialect, sql, portability, database, strata

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from strata.core.hashing import ChecksumPolicy


def split_table_name(table: str) -> tuple[str | None, str]:
    """Split ``schema.table`` into ``(schema, table)``; schema may be ``None``."""
    if "." in table:
        schema, name = table.split(".", 1)
        return schema, name
    return None, table


@runtime_checkable
class Dialect(Protocol):
    """SQL dialect contract used by the history store."""

    @property
    def name(self) -> str:
        """Human-readable dialect name (e.g. ``'sqlite'``)."""
        ...

    def placeholder(self, index: int) -> str:
        """Single positional placeholder (0-based index)."""
        ...

    def placeholders(self, count: int) -> str:
        """Comma-separated placeholder list."""
        ...

    def checksum_type(self, policy: ChecksumPolicy) -> str:
        """Column type holding checksums computed under ``policy``."""
        ...

    def boolean_type(self) -> str:
        """Column type for booleans."""
        ...

    def table_exists_sql(self, table: str) -> tuple[str, tuple]:
        """Query and parameters returning at least one row iff ``table`` exists."""
        ...

    @property
    def supports_transactional_ddl(self) -> bool:
        """Whether DDL statements roll back with the surrounding transaction."""
        ...


class _BaseDialect:
    """Fragments shared by every supported backend."""

    paramstyle = "?"
    supports_transactional_ddl = True

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return self.paramstyle

    def placeholders(self, count: int) -> str:
        return ", ".join(self.placeholder(i) for i in range(count))

    def checksum_type(self, policy: ChecksumPolicy) -> str:
        if ChecksumPolicy(policy) is ChecksumPolicy.SHA256:
            return "VARCHAR(64)"
        return "INTEGER"

    def boolean_type(self) -> str:
        return "BOOLEAN"


class SQLiteDialect(_BaseDialect):
    """SQLite dialect — ``?`` placeholders, ``sqlite_master`` introspection."""

    @property
    def name(self) -> str:
        return "sqlite"

    def table_exists_sql(self, table: str) -> tuple[str, tuple]:
        schema, name = split_table_name(table)
        master = f"{schema}.sqlite_master" if schema else "sqlite_master"
        return f"SELECT name FROM {master} WHERE type = 'table' AND name = ?", (name,)


class PostgreSQLDialect(_BaseDialect):
    """PostgreSQL dialect — ``%s`` placeholders (psycopg2)."""

    paramstyle = "%s"

    @property
    def name(self) -> str:
        return "postgresql"

    def table_exists_sql(self, table: str) -> tuple[str, tuple]:
        schema, name = split_table_name(table)
        return (
            "SELECT table_name FROM information_schema.tables "
            "WHERE table_schema = COALESCE(%s, current_schema()) AND table_name = %s",
            (schema, name),
        )


class MySQLDialect(_BaseDialect):
    """MySQL / MariaDB dialect — ``%s`` placeholders."""

    paramstyle = "%s"
    # DDL commits implicitly
    supports_transactional_ddl = False

    @property
    def name(self) -> str:
        return "mysql"

    def table_exists_sql(self, table: str) -> tuple[str, tuple]:
        schema, name = split_table_name(table)
        return (
            "SELECT table_name FROM information_schema.tables "
            "WHERE table_schema = COALESCE(%s, DATABASE()) AND table_name = %s",
            (schema, name),
        )


# Dialects are stateless
_DIALECTS: dict[str, Dialect] = {
    "sqlite": SQLiteDialect(),
    "postgresql": PostgreSQLDialect(),
    "postgres": PostgreSQLDialect(),  # alias
    "mysql": MySQLDialect(),
    "mariadb": MySQLDialect(),  # alias
}


def get_dialect(db_type: str) -> Dialect:
    """Get a dialect by database type name.

    Raises:
        ValueError: If ``db_type`` is not recognised.
    """
    key = db_type.lower() if isinstance(db_type, str) else db_type.value
    if key not in _DIALECTS:
        raise ValueError(
            f"Unknown dialect '{db_type}'. "
            f"Supported: {sorted(set(_DIALECTS) - {'postgres', 'mariadb'})}"
        )
    return _DIALECTS[key]


def register_dialect(name: str, dialect: Dialect) -> None:
    """Register a custom dialect implementation (e.g. a test double)."""
    _DIALECTS[name.lower()] = dialect


__all__ = [
    "Dialect",
    "SQLiteDialect",
    "PostgreSQLDialect",
    "MySQLDialect",
    "get_dialect",
    "register_dialect",
    "split_table_name",
]
