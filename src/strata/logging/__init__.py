"""
Strata Logging - Structured, run-aware logging.

This module provides:
- Structured logging with structlog
- Run context propagation via contextvars
- Timing utilities for migration steps
- Environment-based configuration

Usage:
    from strata.logging import configure_logging, get_logger, log_step, push_context

    configure_logging()
    log = get_logger(__name__)

    token = push_context(run_id="abc-123", table="flyway_schema_history")
    try:
        with log_step("migration.apply", script="V1__baseline.sql"):
            apply()
    finally:
        token.restore()
"""

from strata.logging.config import configure_logging
from strata.logging.context import (
    LogContext,
    add_context_processor,
    get_context,
    get_logger,
    push_context,
)
from strata.logging.timing import StepTimer, log_step

__all__ = [
    # Configuration
    "configure_logging",
    # Context
    "get_logger",
    "get_context",
    "push_context",
    "add_context_processor",
    "LogContext",
    # Timing
    "log_step",
    "StepTimer",
]
