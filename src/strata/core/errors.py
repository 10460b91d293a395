"""
Structured error types for strata.

Provides a typed error hierarchy with category, retry semantics, structured
context and chained causes. Every failure the migration runner can surface
is one of these types, so callers can tell "the ledger is unreachable" from
"a migration file was edited after it was applied" without parsing messages.

Manifesto:
    - **Typed Error Hierarchy:** One class per failure mode of a migration run
    - **Explicit Retry Semantics:** Nothing in a run is retried internally;
      ``retryable`` tells the caller whether retrying the whole call is sensible
    - **Rich Context:** Errors carry script names, versions and checksums
    - **Error Chaining:** Driver exceptions are preserved as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                        StrataError                               │
        │  (category, retryable, context, cause)                          │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  ValidationError      ConfigError          DatabaseError        │
        │  (VALIDATION)         (CONFIG)             (DATABASE)           │
        │       │                    │                    │                │
        │  MalformedFilename    InvalidConfig        StoreUnavailable     │
        │                       MigrationDirectory   LedgerFormat         │
        │                       ConfirmationRequired DatabaseConnection   │
        │                                                                  │
        │  MigrationError (MIGRATION)                                      │
        │       │                                                          │
        │  ChecksumMismatch  DuplicateMigration  OutOfOrderMigration       │
        │  StatementExecution                                              │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> error = ChecksumMismatchError("V2__latlong.sql", checksum=17, applied_checksum=42)
    >>> error.category
    <ErrorCategory.MIGRATION: 'MIGRATION'>
    >>> error.retryable
    False
    >>> error.to_dict()["context"]["script"]
    'V2__latlong.sql'

Guardrails:
    ❌ DON'T: Raise bare Exception/RuntimeError from the runner
    ✅ DO: Raise the StrataError subclass naming the failure mode

    ❌ DON'T: Swallow the driver exception
    ✅ DO: Pass it as cause= for error chaining

Tags:
    error-handling, exception-hierarchy, migrations, strata

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and reporting."""

    # Infrastructure
    DATABASE = "DATABASE"         # Connection, ledger access, statement failures
    STORAGE = "STORAGE"           # File system

    # Input
    VALIDATION = "VALIDATION"     # Malformed filenames, bad rows
    CONFIG = "CONFIG"             # Missing or invalid settings

    # Migration bookkeeping
    MIGRATION = "MIGRATION"       # Checksum drift, duplicates, ordering

    # Internal
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Typed fields cover what a migration failure is usually about (script,
    version, ledger table); anything else goes into ``metadata``.
    ``to_dict()`` keeps only the fields that are set.

    Examples:
        >>> ctx = ErrorContext(script="V1__baseline.sql", version=1)
        >>> ctx.to_dict()
        {'script': 'V1__baseline.sql', 'version': 1}
    """

    script: str | None = None
    version: int | None = None
    table: str | None = None
    directory: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["script", "version", "table", "directory"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class StrataError(Exception):
    """
    Base exception for all strata errors.

    All StrataError instances carry:
    - **category:** ErrorCategory for classification
    - **retryable:** whether re-running the whole call may succeed
    - **context:** ErrorContext with structured metadata
    - **cause:** optional underlying exception, also set as ``__cause__``

    Subclasses set ``default_category`` and ``default_retryable``.

    Examples:
        >>> error = StrataError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(script="V3__modify.sql").context.script
        'V3__modify.sql'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> StrataError:
        """
        Add context to this error (fluent API).

        Usage:
            raise StrataError("Failed").with_context(script="V1__baseline.sql")
        """
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(StrataError):
    """
    Input validation error.

    Never retryable - the input must be fixed.
    """

    default_category = ErrorCategory.VALIDATION
    default_retryable = False


class MalformedFilenameError(ValidationError):
    """A file name does not follow ``V<digits>__<description>.sql``."""

    def __init__(self, filename: str, message: str | None = None):
        self.filename = filename
        super().__init__(
            message or f"Migration file name {filename!r} does not match V<version>__<description>.sql",
            context=ErrorContext(script=filename),
        )


class MalformedMigrationError(ValidationError):
    """A migration file cannot be read as UTF-8 text."""

    def __init__(self, script: str, *, cause: Exception | None = None):
        self.script = script
        super().__init__(
            f"Migration file {script!r} is not valid UTF-8: {cause}",
            context=ErrorContext(script=script),
            cause=cause,
        )


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(StrataError):
    """
    Configuration error.

    Never retryable - configuration must be fixed.
    """

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class InvalidConfigError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}")


class MigrationDirectoryError(ConfigError):
    """The migrations directory does not exist or is not a directory."""

    def __init__(self, directory: str, message: str | None = None):
        self.directory = directory
        super().__init__(
            message or f"Migrations directory not found: {directory}",
            context=ErrorContext(directory=directory),
        )


class ConfirmationRequiredError(ConfigError, ValueError):
    """A destructive operation was called without explicit confirmation."""


# =============================================================================
# DATABASE ERRORS
# =============================================================================


class DatabaseError(StrataError):
    """Database query or transaction error."""

    default_category = ErrorCategory.DATABASE
    default_retryable = False


class DatabaseConnectionError(DatabaseError):
    """Could not open a connection to the target database."""

    default_retryable = True


class StoreUnavailableError(DatabaseError):
    """
    The ledger table cannot be checked, created or read.

    Raised before any migration is attempted. Retrying the whole run is safe
    once the underlying problem (privileges, connectivity) is fixed.
    """

    default_retryable = True

    def __init__(self, message: str, *, table: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.table = table
        if table is not None:
            self.context.table = table


class LedgerFormatError(DatabaseError):
    """A ledger row has an unexpected shape or the ledger order is broken."""

    def __init__(self, message: str, *, row: Any = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.row = row

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.row is not None:
            result["row"] = repr(self.row)
        return result


# =============================================================================
# MIGRATION ERRORS
# =============================================================================


class MigrationError(StrataError):
    """Error detected while reconciling or applying migrations."""

    default_category = ErrorCategory.MIGRATION
    default_retryable = False


class ChecksumMismatchError(MigrationError):
    """An applied migration's file changed since it was applied."""

    def __init__(self, script: str, *, checksum: int | str, applied_checksum: int | str):
        self.script = script
        self.checksum = checksum
        self.applied_checksum = applied_checksum
        super().__init__(
            f"Migration file {script} has changed since it was applied to the database. "
            f"Expected checksum {applied_checksum}, got {checksum}",
            context=ErrorContext(
                script=script,
                metadata={"checksum": checksum, "applied_checksum": applied_checksum},
            ),
        )


class DuplicateMigrationError(MigrationError):
    """Two or more pending migrations share a version number."""

    def __init__(self, scripts: list[str]):
        self.scripts = list(scripts)
        super().__init__(
            f"Duplicate migration version numbers detected: {self.scripts}",
            context=ErrorContext(metadata={"scripts": self.scripts}),
        )


class OutOfOrderMigrationError(MigrationError):
    """A new migration has a version below the highest applied version."""

    def __init__(self, scripts: list[str], *, latest_applied: int):
        self.scripts = list(scripts)
        self.latest_applied = latest_applied
        super().__init__(
            f"Migrations {self.scripts} have versions lower than the latest applied "
            f"version {latest_applied} and were never applied",
            context=ErrorContext(
                metadata={"scripts": self.scripts, "latest_applied": latest_applied},
            ),
        )


class StatementExecutionError(MigrationError):
    """A statement inside a migration failed; its transaction was rolled back."""

    default_category = ErrorCategory.DATABASE

    def __init__(
        self,
        script: str,
        statement: str,
        *,
        index: int = 0,
        cause: Exception | None = None,
    ):
        self.script = script
        self.statement = statement
        self.index = index
        super().__init__(
            f"Statement {index + 1} of migration {script} failed: {cause}",
            context=ErrorContext(script=script, metadata={"statement_index": index}),
            cause=cause,
        )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Check if re-running the failed call may succeed."""
    if isinstance(error, StrataError):
        return error.retryable
    return isinstance(error, (ConnectionError, OSError))


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, StrataError):
        return error.category
    if isinstance(error, OSError):
        return ErrorCategory.STORAGE
    if isinstance(error, ValueError):
        return ErrorCategory.VALIDATION
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "StrataError",
    # Validation
    "ValidationError",
    "MalformedFilenameError",
    "MalformedMigrationError",
    # Config
    "ConfigError",
    "InvalidConfigError",
    "MigrationDirectoryError",
    "ConfirmationRequiredError",
    # Database
    "DatabaseError",
    "DatabaseConnectionError",
    "StoreUnavailableError",
    "LedgerFormatError",
    # Migration
    "MigrationError",
    "ChecksumMismatchError",
    "DuplicateMigrationError",
    "OutOfOrderMigrationError",
    "StatementExecutionError",
    # Utilities
    "is_retryable",
    "categorize_error",
]
