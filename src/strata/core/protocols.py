"""
Canonical protocol definitions for strata.

Manifesto:
    The migration core never imports a database driver. It talks to the
    database through ``Connection``: something that can ``execute`` a
    statement and commit or roll back. Every adapter's ``transaction()``
    yields one.

Tags:
    protocol, connection, database, strata, contracts

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Connection(Protocol):
    """
    Minimal synchronous connection interface.

    ``sqlite3.Connection`` satisfies it natively; the PostgreSQL and
    SQLAlchemy adapters hand out thin wrappers that do.
    """

    def execute(self, sql: str, params: tuple = ()) -> Any:
        """Execute SQL statement with optional parameters."""
        ...

    def commit(self) -> None:
        """Commit transaction."""
        ...

    def rollback(self) -> None:
        """Rollback transaction."""
        ...


__all__ = [
    "Connection",
]
