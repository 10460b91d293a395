"""Transactional application of pending migrations.

Each migration runs in its own transaction together with the ledger row
that records it: either both commit or neither does. The first failure
stops the run; migrations committed before it stay committed.
"""

from __future__ import annotations

from collections.abc import Sequence

from strata.core.adapters.base import DatabaseAdapter
from strata.core.errors import StatementExecutionError
from strata.core.migrations.descriptor import Migration
from strata.core.migrations.history import HistoryStore
from strata.core.migrations.statements import split_statements, whole_script
from strata.logging import get_logger, log_step, push_context

logger = get_logger(__name__)


class Applier:
    """
    Applies migrations one at a time through ``adapter``.

    Args:
        adapter: Database adapter; its ``transaction()`` scopes each migration
        store: Ledger the applied migrations are recorded in
        split_statements: Split bodies on ``delimiter``; when False the
            whole body is sent as a single statement
        delimiter: Statement delimiter
    """

    def __init__(
        self,
        adapter: DatabaseAdapter,
        store: HistoryStore,
        *,
        split_statements: bool = True,
        delimiter: str = ";",
    ):
        if not delimiter:
            raise ValueError("delimiter must not be empty")
        self.adapter = adapter
        self.store = store
        self.split_statements = split_statements
        self.delimiter = delimiter

    def statements_for(self, migration: Migration) -> list[str]:
        """The statements ``migration`` executes, in order."""
        if self.split_statements:
            return split_statements(migration.body, self.delimiter)
        return whole_script(migration.body)

    def apply_one(self, migration: Migration) -> Migration:
        """
        Apply a single migration and record it.

        Raises:
            StatementExecutionError: a statement failed; nothing of this
                migration was committed.
        """
        statements = self.statements_for(migration)
        token = push_context(script=migration.script, version=migration.version)
        try:
            dialect = self.adapter.dialect
            if not dialect.supports_transactional_ddl:
                logger.warning("migration.non_transactional_ddl", dialect=dialect.name)
            with log_step("migration.apply", statements=len(statements)) as timer:
                with self.adapter.transaction() as conn:
                    for index, statement in enumerate(statements):
                        try:
                            conn.execute(statement)
                        except Exception as e:
                            raise StatementExecutionError(
                                migration.script,
                                statement,
                                index=index,
                                cause=e,
                            ) from e
                    entry = self.store.append(migration, timer.duration_ms, conn)
                timer.add_metric("installed_rank", entry.installed_rank)

            logger.info("migration.applied", execution_time=entry.execution_time)
        finally:
            token.restore()
        return migration

    def apply(self, pending: Sequence[Migration]) -> list[Migration]:
        """Apply ``pending`` in order, halting at the first failure."""
        applied: list[Migration] = []
        for migration in pending:
            applied.append(self.apply_one(migration))
        return applied


__all__ = [
    "Applier",
]
