"""
Logging context management using contextvars.

Context bound here is attached to every log entry by the
``add_context_processor`` structlog processor, so a migration run only binds
its ``run_id`` once and every ledger and statement log line carries it.
The applier pushes ``script`` and ``version`` the same way for each
migration.
"""

from __future__ import annotations

from contextvars import ContextVar
from dataclasses import asdict, dataclass
from typing import Any

import structlog


@dataclass
class LogContext:
    """
    Run context attached to all log entries.

    Core identifiers:
        run_id: Unique id of one migrate/validate/clean call
        target: Credential-free description of the database
        table: Ledger table name

    Tracing (for nested timing blocks):
        span_id: Current span identifier
        parent_span_id: Parent span for nested operations

    Migration context:
        script: Migration file being processed
        version: Its version number
        step: Current processing step name
    """

    run_id: str | None = None
    target: str | None = None
    table: str | None = None

    span_id: str | None = None
    parent_span_id: str | None = None

    script: str | None = None
    version: int | None = None
    step: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    def merge(self, **kwargs) -> LogContext:
        """Create new context with merged values."""
        current = asdict(self)
        current.update({k: v for k, v in kwargs.items() if v is not None})
        return LogContext(**current)


_log_context: ContextVar[LogContext] = ContextVar("strata_log_context")  # noqa: B039


def get_context() -> LogContext:
    """Get the current log context."""
    return _log_context.get(LogContext())


class _ContextToken:
    """Token for restoring context after a scoped operation."""

    def __init__(self, token):
        self._token = token

    def restore(self):
        """Restore the previous context."""
        _log_context.reset(self._token)


def push_context(**kwargs) -> _ContextToken:
    """
    Push new context values, returning a token to restore later.

    Usage:
        token = push_context(script="V1__baseline.sql")
        try:
            apply()
        finally:
            token.restore()
    """
    token = _log_context.set(get_context().merge(**kwargs))
    return _ContextToken(token)


def add_context_processor(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Structlog processor that adds the current context to every entry."""
    for key, value in get_context().to_dict().items():
        if key not in event_dict:
            event_dict[key] = value
    return event_dict


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (typically ``get_logger(__name__)``)."""
    return structlog.get_logger(name)
