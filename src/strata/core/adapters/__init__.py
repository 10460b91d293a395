"""Database adapters -- one interface over the databases strata can migrate.

Manifesto:
    The migration core sees a database as "execute a statement" plus "run a
    block in a transaction that rolls back on any error". Adapters provide
    exactly that for each backend, so the reconcile-and-apply algorithm is
    written once.

    Drivers outside the standard library are **import-guarded**: psycopg2 is
    only required when a PostgreSQL adapter actually connects::

        pip install strata-migrate[postgresql]   # psycopg2-binary

Architecture::

    DatabaseAdapter (base.py)        Abstract base: connect/transaction/query
        |-- SQLiteAdapter            stdlib sqlite3, explicit BEGIN
        |-- PostgreSQLAdapter        psycopg2 (optional)
        |-- SQLAlchemyAdapter        any supported SQLAlchemy Engine/Connection
    AdapterRegistry (registry.py)    name -> adapter class, URL/connection factories
    DatabaseConfig (types.py)        Connection parameters
    DatabaseType (types.py)          Enum of supported backends

Guardrails:
    ❌ Passing raw driver connections deep into the migration core
    ✅ ``wrap_connection(conn)`` once at the entry point

Tags:
    strata, database, adapters, multi-backend, import-guarded

Doc-Types:
    package-overview, module-index
"""

from strata.core.dialect import Dialect, get_dialect
from strata.core.protocols import Connection

from .base import DatabaseAdapter
from .postgresql import PostgreSQLAdapter
from .registry import AdapterRegistry, adapter_from_url, adapter_registry, get_adapter, wrap_connection
from .sqla import SQLAlchemyAdapter
from .sqlite import SQLiteAdapter
from .types import DatabaseConfig, DatabaseType

__all__ = [
    # Types
    "DatabaseType",
    "DatabaseConfig",
    # Protocols / Abstractions
    "Connection",
    "Dialect",
    "get_dialect",
    # Base class
    "DatabaseAdapter",
    # Implementations
    "SQLiteAdapter",
    "PostgreSQLAdapter",
    "SQLAlchemyAdapter",
    # Registry
    "AdapterRegistry",
    "adapter_registry",
    "get_adapter",
    "adapter_from_url",
    "wrap_connection",
]
