"""Database types and configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class DatabaseType(str, Enum):
    """Supported database types."""

    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"


@dataclass
class DatabaseConfig:
    """
    Configuration for a database connection.

    Different fields are used by different database types.
    """

    # Common
    db_type: DatabaseType = DatabaseType.SQLITE

    # SQLite
    path: str | None = None

    # PostgreSQL / MySQL
    host: str = "localhost"
    port: int = 5432
    database: str = ""
    username: str | None = None
    password: str | None = None
    dsn: str | None = None

    # Options
    connect_timeout: int = 10
    readonly: bool = False

    # Extra options (driver-specific)
    options: dict[str, Any] = field(default_factory=dict)

    def describe(self) -> str:
        """Connection description without credentials, for logs."""
        match self.db_type:
            case DatabaseType.SQLITE:
                return f"sqlite:{self.path or ':memory:'}"
            case _:
                if self.dsn:
                    return f"{self.db_type.value}:<dsn>"
                return f"{self.db_type.value}://{self.host}:{self.port}/{self.database}"


__all__ = [
    "DatabaseType",
    "DatabaseConfig",
]
