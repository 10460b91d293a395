"""
Shared pytest fixtures and configuration for strata tests.

This module provides:
- Settings / logging isolation between tests
- In-memory SQLite adapters and connections
- Paths to the scenario migration directories under ``fixtures/sqlite``
- A ``write_migrations`` helper for ad-hoc migration directories

Usage:
    def test_applies(sqlite_adapter, scenario_dir):
        run_migrations(sqlite_adapter, scenario_dir("test1"))
"""

import logging
import shutil
import sqlite3
from collections.abc import Callable, Generator
from pathlib import Path

import pytest
import structlog

from strata.core.adapters import SQLiteAdapter
from strata.core.config import reset_settings

FIXTURES_DIR = Path(__file__).parent / "fixtures" / "sqlite"


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Generator[None, None, None]:
    """Clear cached settings and strip STRATA_* variables from the environment."""
    import os

    for key in list(os.environ):
        if key.startswith("STRATA_"):
            monkeypatch.delenv(key)
    # keep a developer's .env out of the tests
    monkeypatch.chdir(tmp_path)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture(autouse=True)
def _reset_logging() -> Generator[None, None, None]:
    """Drop handlers bound to per-test streams by configure_logging()."""
    yield
    structlog.reset_defaults()
    root = logging.getLogger()
    for handler in list(root.handlers):
        if type(handler).__module__.startswith("_pytest"):
            continue
        root.removeHandler(handler)


# =============================================================================
# Databases
# =============================================================================


@pytest.fixture
def sqlite_conn() -> Generator[sqlite3.Connection, None, None]:
    """A caller-owned in-memory sqlite3 connection."""
    conn = sqlite3.connect(":memory:")
    yield conn
    conn.close()


@pytest.fixture
def sqlite_adapter() -> Generator[SQLiteAdapter, None, None]:
    """A connected in-memory SQLite adapter."""
    adapter = SQLiteAdapter()
    adapter.connect()
    yield adapter
    adapter.disconnect()


# =============================================================================
# Migration directories
# =============================================================================


@pytest.fixture
def scenario_dir() -> Callable[[str], Path]:
    """Resolve one of the scenario directories (test1, test2, …, error2)."""

    def _resolve(name: str) -> Path:
        path = FIXTURES_DIR / name
        assert path.is_dir(), f"missing fixture directory {path}"
        return path

    return _resolve


@pytest.fixture
def migrations_dir(tmp_path: Path) -> Path:
    """An empty migrations directory."""
    path = tmp_path / "migrations"
    path.mkdir()
    return path


@pytest.fixture
def write_migrations(migrations_dir: Path) -> Callable[..., Path]:
    """Write ``{filename: body}`` into ``migrations_dir`` and return the directory."""

    def _write(files: dict[str, str] | None = None, *, copy_from: Path | None = None) -> Path:
        if copy_from is not None:
            for source in copy_from.iterdir():
                shutil.copy(source, migrations_dir / source.name)
        for name, body in (files or {}).items():
            (migrations_dir / name).write_text(body, encoding="utf-8")
        return migrations_dir

    return _write
