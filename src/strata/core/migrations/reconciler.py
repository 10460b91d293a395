"""
Reconciliation of migrations on disk against the ledger.

Manifesto:
    Deciding what to run is a pure function of two lists. Nothing here
    touches a database: the runner hands in what it discovered and what the
    ledger says, and gets back the pending migrations or an error naming
    exactly which files are at fault.

Architecture:
    ::

        reconcile(disk, applied)
          1. check_unique_versions(disk)        DuplicateMigrationError
          2. check_ledger_order(applied)        LedgerFormatError
          3. check_out_of_order(disk, applied)  OutOfOrderMigrationError
          4. merge(disk, applied)               ChecksumMismatchError
          5. check_unique_versions(pending)
          → pending, ascending by version

        classify(disk, applied)   never raises; one MigrationStatus per
                                  migration for reporting

Guardrails:
    ❌ DON'T: Apply anything before reconciliation has fully succeeded
    ✅ DO: Raise before the first transaction is opened

Tags:
    migrations, reconciliation, checksum, strata

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from itertools import groupby
from typing import Any

from strata.core.errors import (
    ChecksumMismatchError,
    DuplicateMigrationError,
    LedgerFormatError,
    OutOfOrderMigrationError,
)
from strata.core.migrations.descriptor import Migration
from strata.core.migrations.history import LedgerEntry


def check_unique_versions(migrations: Sequence[Migration]) -> None:
    """
    Raise if two migrations share a version.

    The error lists every script in every duplicated group, not just the
    second file of each pair.
    """
    ordered = sorted(migrations, key=lambda m: (m.version, m.script))
    offending: list[str] = []
    for _, group in groupby(ordered, key=lambda m: m.version):
        scripts = [m.script for m in group]
        if len(scripts) > 1:
            offending.extend(scripts)
    if offending:
        raise DuplicateMigrationError(offending)


def check_ledger_order(applied: Sequence[LedgerEntry]) -> None:
    """Ledger versions must strictly increase with ``installed_rank``."""
    for previous, current in zip(applied, applied[1:]):
        if current.version <= previous.version:
            raise LedgerFormatError(
                f"Ledger is out of order: {current.script} (version {current.version}) "
                f"was recorded after {previous.script} (version {previous.version})",
                row=current,
            )


def check_out_of_order(disk: Sequence[Migration], applied: Sequence[LedgerEntry]) -> None:
    """Raise for unapplied disk migrations older than the newest applied one."""
    if not applied:
        return
    latest = max(entry.version for entry in applied)
    recorded = {entry.version for entry in applied}
    stale = [m.script for m in disk if m.version < latest and m.version not in recorded]
    if stale:
        raise OutOfOrderMigrationError(stale, latest_applied=latest)


def merge(disk: Sequence[Migration], applied: Sequence[LedgerEntry]) -> list[Migration]:
    """
    Walk both lists in version order and collect what is not yet applied.

    ``disk`` must be sorted by version, ``applied`` in rank order. A disk
    migration whose version is found in the ledger must carry the same
    checksum as the ledger row.
    """
    pending: list[Migration] = []
    j = 0
    for migration in disk:
        while j < len(applied) and applied[j].version != migration.version:
            j += 1
        if j >= len(applied):
            pending.append(migration)
        elif applied[j].checksum != migration.checksum:
            raise ChecksumMismatchError(
                migration.script,
                checksum=migration.checksum,
                applied_checksum=applied[j].checksum,
            )
        else:
            j += 1
    return pending


def reconcile(disk: Sequence[Migration], applied: Sequence[LedgerEntry]) -> list[Migration]:
    """
    Return the migrations that still have to be applied, in version order.

    Raises:
        DuplicateMigrationError: two files share a version.
        LedgerFormatError: ledger versions do not increase with rank.
        OutOfOrderMigrationError: an unapplied file is older than the
            newest applied migration.
        ChecksumMismatchError: an applied file was edited.
    """
    disk = sorted(disk, key=lambda m: (m.version, m.script))
    check_unique_versions(disk)
    check_ledger_order(applied)
    check_out_of_order(disk, applied)
    pending = merge(disk, applied)
    check_unique_versions(pending)
    return pending


class MigrationState(str, Enum):
    """Reported state of one migration."""

    APPLIED = "applied"
    PENDING = "pending"
    CHANGED = "changed"
    OUT_OF_ORDER = "out_of_order"
    MISSING = "missing"


@dataclass
class MigrationStatus:
    """One row of the ``info`` report."""

    version: int
    description: str
    script: str
    state: MigrationState
    checksum: int | str | None = None
    installed_rank: int | None = None
    installed_on: datetime | str | None = None
    execution_time: int | None = None

    def to_dict(self) -> dict[str, Any]:
        installed_on = self.installed_on
        if isinstance(installed_on, datetime):
            installed_on = installed_on.isoformat()
        return {
            "version": self.version,
            "description": self.description,
            "script": self.script,
            "state": self.state.value,
            "checksum": self.checksum,
            "installed_rank": self.installed_rank,
            "installed_on": installed_on,
            "execution_time": self.execution_time,
        }


def classify(disk: Sequence[Migration], applied: Sequence[LedgerEntry]) -> list[MigrationStatus]:
    """
    Describe every migration on disk or in the ledger without raising.

    Applied rows without a file are ``MISSING``; files whose version is
    recorded with a different checksum are ``CHANGED``.
    """
    by_version = {entry.version: entry for entry in applied}
    latest = max(by_version, default=0)
    statuses: list[MigrationStatus] = []
    seen: set[int] = set()

    for migration in disk:
        entry = by_version.get(migration.version)
        if entry is None:
            state = MigrationState.OUT_OF_ORDER if migration.version < latest else MigrationState.PENDING
            statuses.append(
                MigrationStatus(
                    version=migration.version,
                    description=migration.description,
                    script=migration.script,
                    state=state,
                    checksum=migration.checksum,
                )
            )
            continue
        seen.add(migration.version)
        state = MigrationState.APPLIED if entry.checksum == migration.checksum else MigrationState.CHANGED
        statuses.append(
            MigrationStatus(
                version=migration.version,
                description=migration.description,
                script=migration.script,
                state=state,
                checksum=migration.checksum,
                installed_rank=entry.installed_rank,
                installed_on=entry.installed_on,
                execution_time=entry.execution_time,
            )
        )

    for entry in applied:
        if entry.version in seen:
            continue
        statuses.append(
            MigrationStatus(
                version=entry.version,
                description=entry.description,
                script=entry.script,
                state=MigrationState.MISSING,
                checksum=entry.checksum,
                installed_rank=entry.installed_rank,
                installed_on=entry.installed_on,
                execution_time=entry.execution_time,
            )
        )

    statuses.sort(key=lambda s: (s.version, s.script))
    return statuses


__all__ = [
    "MigrationState",
    "MigrationStatus",
    "check_ledger_order",
    "check_out_of_order",
    "check_unique_versions",
    "classify",
    "merge",
    "reconcile",
]
