"""
Step timing for structured logs.

``log_step`` brackets a unit of work (one migration, one ledger reset) with
``<event>.start`` / ``<event>.end`` events, or ``<event>.error`` when the
block raises. The yielded :class:`StepTimer` reads live while the block is
running, so callers can record an elapsed time before the block ends::

    with log_step("migration.apply", script="V1__baseline.sql") as timer:
        run_statements()
        store.append(migration, timer.duration_ms, conn)
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from strata.logging.context import get_context, get_logger, push_context


@dataclass
class StepTimer:
    """Elapsed time and extra fields for one logged step."""

    step: str
    span_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    parent_span_id: str | None = None
    started_at: float = field(default_factory=time.perf_counter)
    ended_at: float | None = None
    metrics: dict[str, Any] = field(default_factory=dict)
    error: BaseException | None = None

    def stop(self) -> None:
        if self.ended_at is None:
            self.ended_at = time.perf_counter()

    @property
    def duration_ms(self) -> float:
        end = time.perf_counter() if self.ended_at is None else self.ended_at
        return (end - self.started_at) * 1000

    def add_metric(self, key: str, value: Any) -> StepTimer:
        self.metrics[key] = value
        return self

    def fields(self) -> dict[str, Any]:
        """Event fields for the end (or error) log line."""
        out: dict[str, Any] = {"span_id": self.span_id, "duration_ms": round(self.duration_ms, 2)}
        if self.parent_span_id:
            out["parent_span_id"] = self.parent_span_id
        out.update(self.metrics)
        if self.error is not None:
            out["error_type"] = type(self.error).__name__
            out["error_message"] = str(self.error)
        return out


@contextmanager
def log_step(event: str, log_start: bool = True, level: str = "info", **extra_metrics) -> Iterator[StepTimer]:
    """
    Log ``event`` as a timed step.

    Args:
        event: Dotted event name, e.g. ``"migration.apply"``
        log_start: Emit ``<event>.start`` at DEBUG
        level: Level of the ``<event>.end`` line
        **extra_metrics: Fields added to every line of the step
    """
    log = get_logger("strata.timing")
    timer = StepTimer(step=event, parent_span_id=get_context().span_id, metrics=dict(extra_metrics))
    token = push_context(span_id=timer.span_id, parent_span_id=timer.parent_span_id, step=event)

    if log_start:
        log.debug(f"{event}.start", span_id=timer.span_id, **extra_metrics)
    try:
        yield timer
    except BaseException as e:
        timer.stop()
        timer.error = e
        log.error(f"{event}.error", **timer.fields())
        raise
    finally:
        timer.stop()
        token.restore()

    getattr(log, level)(f"{event}.end", **timer.fields())
