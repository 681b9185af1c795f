"""Migration executor - run scheduled waves against a connection.

Waves run strictly in order; records inside a wave run in wave order on the
single shared connection. The first failure stops everything: no further
record of the current wave and nothing from later waves is started.

Per record::

    start ─▶ progress(sql) ─▶ execute + commit ─▶ done(ms) ─▶ ledger.record()
                                   │                              │
                                   └──────── failure ─────────────┴─▶ error, stop

The migration SQL and its ledger row are separate transactions. A crash
between them leaves the migration applied but unrecorded; the next run will
try to apply it again.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass, field

from sqlwave.core.errors import ExecutionError
from sqlwave.core.logging import LogContext, get_logger
from sqlwave.core.protocols import Connection, ScriptConnection
from sqlwave.migrations.events import EventKind, LogCallback, MigrationEvent, log_event
from sqlwave.migrations.graph import MigrationGraph
from sqlwave.migrations.ledger import Ledger
from sqlwave.migrations.model import AppliedMigration, Wave

logger = get_logger(__name__)


@dataclass
class ExecutionResult:
    """Outcome of executing a list of waves."""

    applied: list[AppliedMigration] = field(default_factory=list)
    failed: AppliedMigration | None = None
    error: ExecutionError | None = None

    @property
    def success(self) -> bool:
        return self.error is None


def run_sql(conn: Connection, sql: str) -> None:
    """Execute a migration body, as a script when the driver supports it."""
    if isinstance(conn, ScriptConnection):
        conn.executescript(sql)
    else:
        conn.execute(sql)
    conn.commit()


def execute_waves(
    conn: Connection,
    graph: MigrationGraph,
    waves: Sequence[Wave],
    ledger: Ledger,
    log_callback: LogCallback | None = None,
) -> ExecutionResult:
    """Apply every scheduled record, stopping at the first failure.

    Returns:
        ``ExecutionResult`` whose ``applied`` lists every record that ran and
        was recorded, in execution order, including those of a wave that
        failed part-way. ``failed``/``error`` describe the failure, if any.
    """
    emit = log_callback or log_event
    result = ExecutionResult()

    for wave in waves:
        with LogContext(wave=wave.number):
            for record_id in wave.ids:
                record = graph[record_id]
                migration = record.describe()

                emit(MigrationEvent(EventKind.START, migration))
                emit(MigrationEvent(EventKind.PROGRESS, migration, record.sql))
                started = time.perf_counter()
                try:
                    run_sql(conn, record.sql)
                except Exception as exc:
                    conn.rollback()
                    return _fail(
                        result, migration, exc, emit,
                        f"Migration {record.filename} failed: {exc}",
                    )

                elapsed_ms = round((time.perf_counter() - started) * 1000, 3)
                emit(MigrationEvent(EventKind.DONE, migration, {"ms": elapsed_ms}))

                try:
                    ledger.record(record)
                except Exception as exc:
                    logger.warning(
                        "migration.unrecorded",
                        migration=record.id,
                        filename=record.filename,
                        table=ledger.table,
                    )
                    return _fail(
                        result, migration, exc, emit,
                        f"Migration {record.filename} ran but could not be recorded: {exc}",
                    )

                result.applied.append(migration)

    logger.info("executor.complete", applied=len(result.applied), waves=len(waves))
    return result


def _fail(
    result: ExecutionResult,
    migration: AppliedMigration,
    exc: Exception,
    emit: LogCallback,
    message: str,
) -> ExecutionResult:
    emit(MigrationEvent(EventKind.ERROR, migration, str(exc)))
    result.failed = migration
    result.error = ExecutionError(
        message,
        migration=migration,
        applied=result.applied,
        cause=exc,
    )
    return result
