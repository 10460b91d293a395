"""Tests for ``strata.core.errors`` — error hierarchy and helpers."""

from __future__ import annotations

import sqlite3

import pytest

from strata.core.errors import (
    ChecksumMismatchError,
    ConfigError,
    ConfirmationRequiredError,
    DatabaseConnectionError,
    DatabaseError,
    DuplicateMigrationError,
    ErrorCategory,
    ErrorContext,
    InvalidConfigError,
    LedgerFormatError,
    MalformedFilenameError,
    MigrationDirectoryError,
    MigrationError,
    OutOfOrderMigrationError,
    StatementExecutionError,
    StoreUnavailableError,
    StrataError,
    ValidationError,
    categorize_error,
    is_retryable,
)


class TestStrataError:
    def test_defaults(self):
        error = StrataError("Something went wrong")
        assert str(error) == "Something went wrong"
        assert error.category is ErrorCategory.INTERNAL
        assert error.retryable is False
        assert error.cause is None

    def test_cause_is_chained(self):
        cause = sqlite3.OperationalError("disk I/O error")
        error = DatabaseError("failed", cause=cause)
        assert error.cause is cause
        assert error.__cause__ is cause

    def test_with_context(self):
        error = StrataError("failed").with_context(script="V1__baseline.sql", attempt=2)
        assert error.context.script == "V1__baseline.sql"
        assert error.context.metadata == {"attempt": 2}

    def test_to_dict(self):
        error = DatabaseError("failed", cause=ValueError("bad"))
        error.with_context(table="flyway_schema_history")
        assert error.to_dict() == {
            "error_type": "DatabaseError",
            "message": "failed",
            "category": "DATABASE",
            "retryable": False,
            "context": {"table": "flyway_schema_history"},
            "cause": "bad",
        }

    def test_repr(self):
        assert repr(ConfigError("missing")) == "ConfigError('missing', category=CONFIG)"


class TestErrorContext:
    def test_to_dict_skips_unset(self):
        assert ErrorContext(script="V1__baseline.sql", version=1).to_dict() == {
            "script": "V1__baseline.sql",
            "version": 1,
        }

    def test_metadata_merged(self):
        assert ErrorContext(metadata={"k": "v"}).to_dict() == {"k": "v"}


class TestHierarchy:
    @pytest.mark.parametrize(
        "error, parent, category",
        [
            (MalformedFilenameError("x.sql"), ValidationError, ErrorCategory.VALIDATION),
            (InvalidConfigError("table_name", "1x"), ConfigError, ErrorCategory.CONFIG),
            (MigrationDirectoryError("migrations"), ConfigError, ErrorCategory.CONFIG),
            (ConfirmationRequiredError("confirm"), ConfigError, ErrorCategory.CONFIG),
            (StoreUnavailableError("down"), DatabaseError, ErrorCategory.DATABASE),
            (LedgerFormatError("bad row"), DatabaseError, ErrorCategory.DATABASE),
            (DatabaseConnectionError("refused"), DatabaseError, ErrorCategory.DATABASE),
            (ChecksumMismatchError("V1__a.sql", checksum=1, applied_checksum=2), MigrationError, ErrorCategory.MIGRATION),
            (DuplicateMigrationError(["V1__a.sql", "V1__b.sql"]), MigrationError, ErrorCategory.MIGRATION),
            (OutOfOrderMigrationError(["V1__a.sql"], latest_applied=2), MigrationError, ErrorCategory.MIGRATION),
            (StatementExecutionError("V1__a.sql", "SELECT"), MigrationError, ErrorCategory.DATABASE),
        ],
    )
    def test_parent_and_category(self, error, parent, category):
        assert isinstance(error, parent)
        assert isinstance(error, StrataError)
        assert error.category is category

    def test_confirmation_required_is_value_error(self):
        assert isinstance(ConfirmationRequiredError("confirm"), ValueError)


class TestMigrationErrors:
    def test_checksum_mismatch_message(self):
        error = ChecksumMismatchError("V3__modify.sql", checksum=-5, applied_checksum=42)
        assert str(error) == (
            "Migration file V3__modify.sql has changed since it was applied to the database. "
            "Expected checksum 42, got -5"
        )
        assert error.context.script == "V3__modify.sql"

    def test_duplicate_lists_scripts(self):
        error = DuplicateMigrationError(["V6__first.sql", "V6__second.sql"])
        assert error.scripts == ["V6__first.sql", "V6__second.sql"]
        assert "V6__first.sql" in str(error)
        assert "V6__second.sql" in str(error)

    def test_statement_execution_carries_statement(self):
        cause = sqlite3.OperationalError('near "CREAT": syntax error')
        error = StatementExecutionError("V6__invalid.sql", "CREAT TABLE x", index=1, cause=cause)
        assert error.statement == "CREAT TABLE x"
        assert error.index == 1
        assert error.__cause__ is cause
        assert "Statement 2 of migration V6__invalid.sql failed" in str(error)

    def test_store_unavailable_table(self):
        error = StoreUnavailableError("down", table="flyway_schema_history")
        assert error.table == "flyway_schema_history"
        assert error.context.table == "flyway_schema_history"

    def test_ledger_format_to_dict_includes_row(self):
        assert "row" in LedgerFormatError("bad", row=(1, 2)).to_dict()


class TestHelpers:
    def test_is_retryable(self):
        assert is_retryable(StoreUnavailableError("down")) is True
        assert is_retryable(DatabaseConnectionError("refused")) is True
        assert is_retryable(ChecksumMismatchError("V1__a.sql", checksum=1, applied_checksum=2)) is False
        assert is_retryable(ConnectionError()) is True
        assert is_retryable(KeyError()) is False

    def test_categorize_error(self):
        assert categorize_error(DuplicateMigrationError([])) is ErrorCategory.MIGRATION
        assert categorize_error(FileNotFoundError()) is ErrorCategory.STORAGE
        assert categorize_error(ValueError()) is ErrorCategory.VALIDATION
        assert categorize_error(KeyError()) is ErrorCategory.UNKNOWN
