"""Tests for ``strata.core.migrations.descriptor`` — file names, descriptors, discovery."""

from __future__ import annotations

import pytest

from strata.core.errors import MalformedFilenameError, MalformedMigrationError, MigrationDirectoryError
from strata.core.hashing import ChecksumPolicy, compute_checksum
from strata.core.migrations.descriptor import (
    Migration,
    discover_migrations,
    is_migration_filename,
    parse_filename,
)


class TestParseFilename:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("V1__baseline.sql", (1, "baseline")),
            ("V2__latlong.sql", (2, "latlong")),
            ("V4__modify_back.sql", (4, "modify_back")),
            ("V007__padded.sql", (7, "padded")),
            ("V20240101__dated.sql", (20240101, "dated")),
        ],
    )
    def test_valid_names(self, name, expected):
        assert parse_filename(name) == expected

    def test_uses_base_name(self):
        assert parse_filename("/srv/migrations/V3__modify.sql") == (3, "modify")

    @pytest.mark.parametrize(
        "name",
        [
            "v1__lowercase.sql",
            "V1_single_underscore.sql",
            "V1__baseline.SQL",
            "V1__baseline.sql.bak",
            "Vx__nonnumeric.sql",
            "V1__has-dash.sql",
            "V1__.sql",
            "README.md",
            "U1__undo.sql",
            "V1__baseline.sql\n",
            "V1__caf\u00e9.sql",
        ],
    )
    def test_malformed_names(self, name):
        with pytest.raises(MalformedFilenameError) as exc_info:
            parse_filename(name)
        assert exc_info.value.filename == name

    def test_version_zero_rejected(self):
        with pytest.raises(MalformedFilenameError, match="version 0"):
            parse_filename("V0__zero.sql")

    def test_is_migration_filename(self):
        assert is_migration_filename("V1__baseline.sql") is True
        assert is_migration_filename("notes.txt") is False


class TestMigration:
    def test_from_file(self, tmp_path):
        path = tmp_path / "V2__latlong.sql"
        path.write_text("CREATE TABLE latlong (lat REAL, lon REAL);\n", encoding="utf-8")

        migration = Migration.from_file(path)

        assert migration.version == 2
        assert migration.description == "latlong"
        assert migration.script == "V2__latlong.sql"
        assert migration.body == "CREATE TABLE latlong (lat REAL, lon REAL);\n"
        assert migration.checksum == compute_checksum(migration.body)
        assert migration.path == path

    def test_from_file_sha256(self, tmp_path):
        path = tmp_path / "V1__baseline.sql"
        path.write_text("SELECT 1;", encoding="utf-8")

        migration = Migration.from_file(path, ChecksumPolicy.SHA256)

        assert isinstance(migration.checksum, str)
        assert len(migration.checksum) == 64

    def test_from_file_keeps_crlf(self, tmp_path):
        path = tmp_path / "V1__baseline.sql"
        path.write_bytes(b"SELECT 1;\r\nSELECT 2;\r\n")

        migration = Migration.from_file(path, ChecksumPolicy.SHA256)

        assert migration.body == "SELECT 1;\r\nSELECT 2;\r\n"
        assert migration.checksum != compute_checksum("SELECT 1;\nSELECT 2;\n", ChecksumPolicy.SHA256)

    def test_crlf_does_not_change_crc32(self, tmp_path):
        lf = tmp_path / "V1__lf.sql"
        crlf = tmp_path / "V2__crlf.sql"
        lf.write_bytes(b"SELECT 1;\nSELECT 2;\n")
        crlf.write_bytes(b"SELECT 1;\r\nSELECT 2;\r\n")

        assert Migration.from_file(lf).checksum == Migration.from_file(crlf).checksum

    def test_invalid_utf8(self, tmp_path):
        path = tmp_path / "V1__binary.sql"
        path.write_bytes(b"SELECT '\xff';")

        with pytest.raises(MalformedMigrationError) as exc_info:
            Migration.from_file(path)

        assert exc_info.value.script == "V1__binary.sql"
        assert isinstance(exc_info.value.__cause__, UnicodeDecodeError)

    def test_equality_ignores_body_and_path(self):
        a = Migration(1, "baseline", "V1__baseline.sql", 42, body="x")
        b = Migration(1, "baseline", "V1__baseline.sql", 42, body="y")
        assert a == b
        assert hash(a) == hash(b)

    def test_equality_uses_checksum(self):
        a = Migration(1, "baseline", "V1__baseline.sql", 42)
        b = Migration(1, "baseline", "V1__baseline.sql", 43)
        assert a != b

    def test_not_equal_to_unrelated_object(self):
        assert Migration(1, "baseline", "V1__baseline.sql", 42) != (1, "baseline", "V1__baseline.sql", 42)


class TestDiscoverMigrations:
    def test_sorted_by_version(self, write_migrations):
        directory = write_migrations(
            {
                "V10__ten.sql": "SELECT 10;",
                "V2__two.sql": "SELECT 2;",
                "V1__one.sql": "SELECT 1;",
            }
        )

        migrations = discover_migrations(directory)

        assert [m.version for m in migrations] == [1, 2, 10]

    def test_ignores_non_matching_entries(self, write_migrations, migrations_dir):
        (migrations_dir / "nested").mkdir()
        directory = write_migrations(
            {
                "V1__one.sql": "SELECT 1;",
                "README.md": "docs",
                "v2__lower.sql": "SELECT 2;",
                "V3__three.sql.orig": "SELECT 3;",
            }
        )

        migrations = discover_migrations(directory)

        assert [m.script for m in migrations] == ["V1__one.sql"]

    def test_empty_directory(self, migrations_dir):
        assert discover_migrations(migrations_dir) == []

    def test_duplicates_ordered_by_script(self, write_migrations):
        directory = write_migrations({"V6__second.sql": "SELECT 2;", "V6__first.sql": "SELECT 1;"})

        migrations = discover_migrations(directory)

        assert [m.script for m in migrations] == ["V6__first.sql", "V6__second.sql"]

    def test_missing_directory(self, tmp_path):
        with pytest.raises(MigrationDirectoryError):
            discover_migrations(tmp_path / "nope")

    def test_file_instead_of_directory(self, tmp_path):
        path = tmp_path / "V1__one.sql"
        path.write_text("SELECT 1;")
        with pytest.raises(MigrationDirectoryError):
            discover_migrations(path)

    def test_scenario_directory(self, scenario_dir):
        migrations = discover_migrations(scenario_dir("test1"))
        assert [m.script for m in migrations] == [
            "V1__baseline.sql",
            "V2__latlong.sql",
            "V3__modify.sql",
        ]
