"""Tests for ``strata.core.migrations.history`` — ledger table and rows."""

from __future__ import annotations

from datetime import datetime
from unittest.mock import patch

import pytest

from strata.core.errors import InvalidConfigError, LedgerFormatError, StoreUnavailableError
from strata.core.hashing import ChecksumPolicy
from strata.core.migrations.descriptor import Migration
from strata.core.migrations.history import LEDGER_COLUMNS, HistoryStore, LedgerEntry


def _migration(version: int, checksum: int | str = 100) -> Migration:
    return Migration(version, f"step{version}", f"V{version}__step{version}.sql", checksum)


def _row(**overrides):
    values = {
        "installed_rank": 1,
        "version": "1",
        "description": "baseline",
        "type": "SQL",
        "script": "V1__baseline.sql",
        "checksum": -12345,
        "installed_by": "strata",
        "installed_on": "2024-01-01 00:00:00",
        "execution_time": 3,
        "success": 1,
    }
    values.update(overrides)
    return tuple(values[c] for c in LEDGER_COLUMNS)


class TestLedgerEntryFromRow:
    def test_valid_row(self):
        entry = LedgerEntry.from_row(_row())
        assert entry.installed_rank == 1
        assert entry.version == 1
        assert entry.script == "V1__baseline.sql"
        assert entry.checksum == -12345
        assert entry.success is True
        assert entry.type == "SQL"

    def test_integer_version_accepted(self):
        assert LedgerEntry.from_row(_row(version=7)).version == 7

    def test_datetime_installed_on_accepted(self):
        entry = LedgerEntry.from_row(_row(installed_on=datetime(2024, 1, 1)))
        assert entry.installed_on == datetime(2024, 1, 1)

    def test_sha256_checksum_kept_as_text(self):
        entry = LedgerEntry.from_row(_row(checksum="ab" * 32), ChecksumPolicy.SHA256)
        assert entry.checksum == "ab" * 32

    def test_crc32_checksum_text_coerced(self):
        assert LedgerEntry.from_row(_row(checksum="-42")).checksum == -42

    def test_null_checksum(self):
        assert LedgerEntry.from_row(_row(checksum=None)).checksum is None

    def test_wrong_column_count(self):
        with pytest.raises(LedgerFormatError, match="columns"):
            LedgerEntry.from_row(_row()[:-1])

    def test_non_numeric_version(self):
        with pytest.raises(LedgerFormatError, match="version"):
            LedgerEntry.from_row(_row(version="1.2"))

    def test_null_version(self):
        with pytest.raises(LedgerFormatError):
            LedgerEntry.from_row(_row(version=None))

    def test_bool_rank_rejected(self):
        with pytest.raises(LedgerFormatError, match="installed_rank"):
            LedgerEntry.from_row(_row(installed_rank=True))

    def test_wrong_script_type(self):
        with pytest.raises(LedgerFormatError, match="script"):
            LedgerEntry.from_row(_row(script=42))

    def test_bad_success_value(self):
        with pytest.raises(LedgerFormatError, match="success"):
            LedgerEntry.from_row(_row(success="yes"))

    def test_non_integer_crc_checksum(self):
        with pytest.raises(LedgerFormatError, match="checksum"):
            LedgerEntry.from_row(_row(checksum="abc"))

    def test_error_carries_row(self):
        row = _row(script=42)
        with pytest.raises(LedgerFormatError) as exc_info:
            LedgerEntry.from_row(row)
        assert exc_info.value.row == row


class TestLedgerEntryEquality:
    def test_equals_matching_migration(self):
        entry = LedgerEntry.from_row(_row())
        migration = Migration(1, "baseline", "V1__baseline.sql", -12345, body="CREATE TABLE t (id INT);")
        assert entry == migration
        assert migration == entry

    def test_rank_and_timing_ignored(self):
        a = LedgerEntry.from_row(_row(installed_rank=1, execution_time=5))
        b = LedgerEntry.from_row(_row(installed_rank=9, execution_time=500))
        assert a == b


class TestHistoryStoreInit:
    def test_default_table_name(self, sqlite_adapter):
        store = HistoryStore(sqlite_adapter)
        assert store.table_name == "flyway_schema_history"
        assert store.policy is ChecksumPolicy.CRC32

    @pytest.mark.parametrize("name", ["", "1table", "drop table x;", "a.b.c", "my-table"])
    def test_invalid_table_name(self, sqlite_adapter, name):
        with pytest.raises(InvalidConfigError):
            HistoryStore(sqlite_adapter, name)


class TestHistoryStoreTable:
    def test_ensure_table_creates_once(self, sqlite_adapter):
        store = HistoryStore(sqlite_adapter)

        assert store.exists() is False
        assert store.ensure_table() is True
        assert store.exists() is True
        assert store.ensure_table() is False

    def test_table_columns(self, sqlite_adapter):
        store = HistoryStore(sqlite_adapter)
        store.ensure_table()

        rows = sqlite_adapter.query("PRAGMA table_info(flyway_schema_history)")

        assert tuple(row[1] for row in rows) == LEDGER_COLUMNS

    def test_custom_table_name(self, sqlite_adapter):
        store = HistoryStore(sqlite_adapter, "schema_history")
        store.ensure_table()
        assert sqlite_adapter.table_exists("schema_history")
        assert not sqlite_adapter.table_exists("flyway_schema_history")

    def test_schema_qualified_table_name(self, sqlite_adapter):
        store = HistoryStore(sqlite_adapter, "main.schema_history")
        assert store.ensure_table() is True
        assert store.exists() is True

    def test_list_applied_empty(self, sqlite_adapter):
        store = HistoryStore(sqlite_adapter)
        store.ensure_table()
        assert store.list_applied() == []

    def test_list_applied_without_table_is_unavailable(self, sqlite_adapter):
        store = HistoryStore(sqlite_adapter)
        with pytest.raises(StoreUnavailableError) as exc_info:
            store.list_applied()
        assert exc_info.value.table == "flyway_schema_history"
        assert exc_info.value.cause is not None

    def test_exists_failure_is_unavailable(self, sqlite_adapter):
        store = HistoryStore(sqlite_adapter)
        with patch.object(sqlite_adapter, "table_exists", side_effect=RuntimeError("permission denied")):
            with pytest.raises(StoreUnavailableError, match="permission denied"):
                store.ensure_table()


class TestHistoryStoreAppend:
    def test_append_and_list(self, sqlite_adapter):
        store = HistoryStore(sqlite_adapter, installed_by="ci")
        store.ensure_table()

        with sqlite_adapter.transaction() as conn:
            first = store.append(_migration(1, 111), 12.7, conn)
        with sqlite_adapter.transaction() as conn:
            second = store.append(_migration(2, -222), 0.2, conn)

        entries = store.list_applied()

        assert [e.installed_rank for e in entries] == [1, 2]
        assert [e.version for e in entries] == [1, 2]
        assert [e.checksum for e in entries] == [111, -222]
        assert entries[0].installed_by == "ci"
        assert entries[0].execution_time == 12
        assert entries[1].execution_time == 1
        assert all(e.success for e in entries)
        assert entries[0].installed_on is not None
        assert (first.installed_rank, second.installed_rank) == (1, 2)

    def test_version_stored_as_text(self, sqlite_adapter):
        store = HistoryStore(sqlite_adapter)
        store.ensure_table()
        with sqlite_adapter.transaction() as conn:
            store.append(_migration(3), 5, conn)

        rows = sqlite_adapter.query("SELECT typeof(version), version FROM flyway_schema_history")

        assert rows == [("text", "3")]

    def test_append_rolls_back_with_transaction(self, sqlite_adapter):
        store = HistoryStore(sqlite_adapter)
        store.ensure_table()

        with pytest.raises(RuntimeError):
            with sqlite_adapter.transaction() as conn:
                store.append(_migration(1), 5, conn)
                raise RuntimeError("statement failed")

        assert store.list_applied() == []

    def test_next_rank(self, sqlite_adapter):
        store = HistoryStore(sqlite_adapter)
        store.ensure_table()
        with sqlite_adapter.transaction() as conn:
            assert store.next_rank(conn) == 1
            store.append(_migration(1), 5, conn)
            assert store.next_rank(conn) == 2

    def test_sha256_ledger(self, sqlite_adapter):
        store = HistoryStore(sqlite_adapter, policy=ChecksumPolicy.SHA256)
        store.ensure_table()
        with sqlite_adapter.transaction() as conn:
            store.append(_migration(1, "f" * 64), 5, conn)

        assert store.list_applied()[0].checksum == "f" * 64

    def test_corrupt_row_raises_format_error(self, sqlite_adapter):
        store = HistoryStore(sqlite_adapter)
        store.ensure_table()
        sqlite_adapter.execute(
            "INSERT INTO flyway_schema_history "
            "(installed_rank, version, description, type, script, checksum, installed_by, execution_time, success) "
            "VALUES (1, 'one', 'baseline', 'SQL', 'V1__baseline.sql', 0, 'strata', 1, 1)"
        )
        with pytest.raises(LedgerFormatError):
            store.list_applied()

    def _insert(self, adapter, rank, version, type_="SQL", success=1, script=None):
        script = script or f"V{rank}__d.sql"
        adapter.execute(
            "INSERT INTO flyway_schema_history "
            "(installed_rank, version, description, type, script, checksum, installed_by, execution_time, success) "
            f"VALUES ({rank}, {version}, 'd', '{type_}', '{script}', 0, 'flyway', 1, {success})"
        )

    def test_repeatable_rows_skipped(self, sqlite_adapter):
        store = HistoryStore(sqlite_adapter)
        store.ensure_table()
        self._insert(sqlite_adapter, 1, "'1'")
        self._insert(sqlite_adapter, 2, "NULL", script="R__views.sql")

        entries = store.list_applied()

        assert [e.script for e in entries] == ["V1__d.sql"]

    def test_baseline_row_rejected(self, sqlite_adapter):
        store = HistoryStore(sqlite_adapter)
        store.ensure_table()
        self._insert(sqlite_adapter, 1, "'1'", type_="BASELINE", script="<< Flyway Baseline >>")

        with pytest.raises(LedgerFormatError, match="BASELINE"):
            store.list_applied()

    def test_failed_row_rejected(self, sqlite_adapter):
        store = HistoryStore(sqlite_adapter)
        store.ensure_table()
        self._insert(sqlite_adapter, 1, "'1'")
        self._insert(sqlite_adapter, 2, "'2'", success=0)

        with pytest.raises(LedgerFormatError, match="failed migration 'V2__d.sql'"):
            store.list_applied()

    def test_dotted_version_rejected(self, sqlite_adapter):
        store = HistoryStore(sqlite_adapter)
        store.ensure_table()
        self._insert(sqlite_adapter, 1, "'1.1'")

        with pytest.raises(LedgerFormatError, match="dotted versions"):
            store.list_applied()


class TestHistoryStoreReset:
    def test_reset_empties_ledger_only(self, sqlite_adapter):
        sqlite_adapter.execute("CREATE TABLE users (id INTEGER PRIMARY KEY)")
        store = HistoryStore(sqlite_adapter)
        store.ensure_table()
        with sqlite_adapter.transaction() as conn:
            store.append(_migration(1), 5, conn)

        store.reset()

        assert store.exists() is True
        assert store.list_applied() == []
        assert sqlite_adapter.table_exists("users")

    def test_reset_creates_missing_table(self, sqlite_adapter):
        store = HistoryStore(sqlite_adapter)
        store.reset()
        assert store.exists() is True
