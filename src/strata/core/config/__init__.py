"""Centralized configuration.

Quick start::

    from strata.core.config import get_settings

    settings = get_settings()
    print(settings.table_name)        # "flyway_schema_history"
    print(settings.checksum_policy)   # ChecksumPolicy.CRC32

Architecture::

    settings.py       StrataSettings (pydantic-settings) + get_settings() cache

Guardrails:
    ❌ Parsing STRATA_* env vars ad-hoc in each module
    ✅ ``get_settings().table_name`` from the cached singleton
"""

from .settings import (
    DEFAULT_INSTALLED_BY,
    DEFAULT_TABLE_NAME,
    StrataSettings,
    get_settings,
    reset_settings,
    validate_table_name,
)

__all__ = [
    "DEFAULT_INSTALLED_BY",
    "DEFAULT_TABLE_NAME",
    "StrataSettings",
    "get_settings",
    "reset_settings",
    "validate_table_name",
]
