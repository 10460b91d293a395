"""
Centralized settings for strata.

Manifesto:
    One validated, cached settings object replaces scattered constants (the
    ledger table name, the checksum policy, the statement delimiter) and
    ad-hoc environment parsing. CLI options override it; library callers
    pass explicit arguments and never need it.

All fields can be set via ``STRATA_*`` environment variables (e.g.
``STRATA_TABLE_NAME=schema_history``) or a ``.env`` file.

Tags:
    strata, configuration, settings, pydantic, caching, validation

Doc-Types:
    api-reference
"""

from __future__ import annotations

import re
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from strata.core.hashing import ChecksumPolicy

DEFAULT_TABLE_NAME = "flyway_schema_history"
DEFAULT_INSTALLED_BY = "strata"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")


def validate_table_name(value: str) -> str:
    """Return ``value`` if it is a plain or schema-qualified SQL identifier."""
    if not _IDENTIFIER.match(value):
        raise ValueError(f"Invalid ledger table name: {value!r}")
    return value


class StrataSettings(BaseSettings):
    """strata configuration."""

    model_config = SettingsConfigDict(
        env_prefix="STRATA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Target ───────────────────────────────────────────────────
    database_url: str = Field(default="sqlite:///strata.db", description="Database URL")
    migrations_dir: Path = Field(default=Path("migrations"), description="Directory of V<n>__<desc>.sql files")

    # ── Ledger ───────────────────────────────────────────────────
    table_name: str = Field(default=DEFAULT_TABLE_NAME)
    checksum_policy: ChecksumPolicy = Field(default=ChecksumPolicy.CRC32)
    installed_by: str = Field(default=DEFAULT_INSTALLED_BY, max_length=100)

    # ── Execution ────────────────────────────────────────────────
    split_statements: bool = Field(default=True)
    delimiter: str = Field(default=";", min_length=1)

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console")

    @field_validator("table_name")
    @classmethod
    def _check_table_name(cls, value: str) -> str:
        return validate_table_name(value)

    @field_validator("delimiter")
    @classmethod
    def _check_delimiter(cls, value: str) -> str:
        if value.strip() != value or "--" in value:
            raise ValueError(f"Invalid statement delimiter: {value!r}")
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in ("DEBUG", "INFO", "WARNING", "ERROR"):
            raise ValueError(f"Invalid log level: {value!r}")
        return value

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        value = value.lower()
        if value not in ("json", "console"):
            raise ValueError(f"Invalid log format: {value!r}")
        return value


# ── Settings factory with caching ────────────────────────────────────────

_settings_cache: dict[str, StrataSettings] = {}


def get_settings(*, env_file: Path | str | None = None, _force_reload: bool = False) -> StrataSettings:
    """Load, validate, and cache a :class:`StrataSettings` instance.

    Parameters
    ----------
    env_file:
        Explicit ``.env`` file; defaults to ``.env`` in the working directory.
    _force_reload:
        Bypass cache and reload.
    """
    cache_key = str(env_file or "")
    if not _force_reload and cache_key in _settings_cache:
        return _settings_cache[cache_key]

    if env_file is not None:
        settings = StrataSettings(_env_file=env_file)  # type: ignore[call-arg]
    else:
        settings = StrataSettings()
    _settings_cache[cache_key] = settings
    return settings


def reset_settings() -> None:
    """Clear the settings cache (tests, or after changing the environment)."""
    _settings_cache.clear()


__all__ = [
    "DEFAULT_INSTALLED_BY",
    "DEFAULT_TABLE_NAME",
    "StrataSettings",
    "get_settings",
    "reset_settings",
    "validate_table_name",
]
