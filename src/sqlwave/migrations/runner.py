"""Migration runner - the programmatic entry points.

Each call builds its own graph from the artifacts and a fresh ledger
snapshot; nothing is kept between calls.

    init(conn)       create the ledger table and indexes (idempotent)
    plan(conn)       Loader → Validator → Graph → Scheduler, no execution
    apply(conn)      plan, then execute the waves; returns MigrationResult
    migrate(conn)    apply(...).applied
    status(conn)     per-artifact state against the ledger

Example::

    import sqlite3
    from sqlwave import MigrateOptions, init, migrate

    conn = sqlite3.connect("app.db")
    init(conn)
    applied = migrate(conn, MigrateOptions(root="db/migrations"))
    for m in applied:
        print(m.wave, m.filename)
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from sqlwave.core.dialect import get_dialect
from sqlwave.core.errors import ConfigError, ExecutionError
from sqlwave.core.logging import LogContext, get_logger
from sqlwave.core.protocols import Connection
from sqlwave.core.settings import SqlwaveSettings
from sqlwave.migrations.events import LogCallback
from sqlwave.migrations.executor import execute_waves
from sqlwave.migrations.graph import MigrationGraph
from sqlwave.migrations.ledger import DEFAULT_TABLE, Ledger
from sqlwave.migrations.loader import load_from_source
from sqlwave.migrations.model import AppliedMigration, MigrationType, Wave
from sqlwave.migrations.scheduler import schedule_waves
from sqlwave.migrations.sources import source_for
from sqlwave.migrations.validator import validate_dependencies

logger = get_logger(__name__)

DEFAULT_ROOT = "migrations/"


@dataclass
class MigrateOptions:
    """Options for a run; every field has a default.

    Attributes:
        root: Artifact directory, or ``package:<pkg>/<subdir>``
        table_name: Ledger table
        log_callback: Receives ``MigrationEvent``s (default: structured log)
        dialect: Ledger SQL dialect name
    """

    root: str | Path = DEFAULT_ROOT
    table_name: str = DEFAULT_TABLE
    log_callback: LogCallback | None = None
    dialect: str = "sqlite"

    @classmethod
    def from_settings(cls, settings: SqlwaveSettings, **overrides: Any) -> MigrateOptions:
        values: dict[str, Any] = {
            "root": settings.root,
            "table_name": settings.table_name,
            "dialect": settings.dialect,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


@dataclass
class MigrationPlan:
    """What a run would execute: the graph and its waves."""

    graph: MigrationGraph
    waves: list[Wave]

    @property
    def migrations(self) -> list[AppliedMigration]:
        """Scheduled migrations in execution order."""
        return [self.graph[rid].describe() for wave in self.waves for rid in wave.ids]

    def to_dict(self) -> dict[str, Any]:
        return {
            "waves": [
                {
                    "wave": wave.number,
                    "migrations": [self.graph[rid].describe().to_dict() for rid in wave.ids],
                }
                for wave in self.waves
            ],
            "total": sum(len(wave) for wave in self.waves),
        }


@dataclass
class MigrationResult:
    """Outcome of ``apply``."""

    applied: list[AppliedMigration] = field(default_factory=list)
    waves: list[Wave] = field(default_factory=list)
    failed: AppliedMigration | None = None
    error: ExecutionError | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        """Raise the ``ExecutionError`` of a failed run."""
        if self.error is not None:
            raise self.error

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "success": self.success,
            "applied": [m.to_dict() for m in self.applied],
            "wave_count": len(self.waves),
        }
        if self.error is not None:
            result["failed"] = self.failed.to_dict() if self.failed else None
            result["error"] = self.error.to_dict()
        return result


class MigrationState(str, Enum):
    APPLIED = "applied"      # up to date, will not run
    PENDING = "pending"      # never applied
    CHANGED = "changed"      # repeatable whose content changed
    CASCADED = "cascaded"    # unchanged repeatable re-run because of its graph


@dataclass(frozen=True)
class MigrationStatus:
    migration: AppliedMigration
    state: MigrationState

    def to_dict(self) -> dict[str, Any]:
        return {**self.migration.to_dict(), "state": self.state.value}


def _ledger(conn: Connection, options: MigrateOptions) -> Ledger:
    try:
        dialect = get_dialect(options.dialect)
    except ValueError as exc:
        raise ConfigError(str(exc), cause=exc)
    return Ledger(conn, options.table_name, dialect)


def init(conn: Connection, options: MigrateOptions | None = None) -> None:
    """Create the ledger table and its indexes if they don't exist."""
    options = options or MigrateOptions()
    _ledger(conn, options).ensure_schema()


def plan(conn: Connection, options: MigrateOptions | None = None) -> MigrationPlan:
    """Build the graph and waves for a run without executing anything.

    Raises:
        LedgerUninitializedError: ``init`` has not been run.
        MalformedArtifactError: An artifact name or metadata block is invalid.
        DependencyResolutionError: Unknown dependency ids or duplicate ids.
        CyclicDependencyError: Runnability or waves cannot converge.
    """
    options = options or MigrateOptions()
    ledger = _ledger(conn, options)
    ledger.require()

    source = source_for(options.root)
    records = load_from_source(source, ledger.exclusions(), ledger.repeatable_hashes())
    validate_dependencies(records)
    graph = MigrationGraph(records)
    waves = schedule_waves(graph)

    logger.debug("runner.planned", source=repr(source), records=len(graph), waves=len(waves))
    return MigrationPlan(graph=graph, waves=waves)


def apply(conn: Connection, options: MigrateOptions | None = None) -> MigrationResult:
    """Plan and execute a run.

    Execution failures do not raise; they are returned in the result
    (``result.raise_for_error()`` turns them into an exception). Failures
    before execution raise as documented on ``plan``.
    """
    options = options or MigrateOptions()
    with LogContext(run_id=uuid.uuid4().hex[:12], table=options.table_name):
        migration_plan = plan(conn, options)
        ledger = _ledger(conn, options)
        execution = execute_waves(
            conn,
            migration_plan.graph,
            migration_plan.waves,
            ledger,
            options.log_callback,
        )

        logger.info(
            "runner.finished",
            applied=len(execution.applied),
            success=execution.success,
            failed=execution.failed.filename if execution.failed else None,
        )

    return MigrationResult(
        applied=execution.applied,
        waves=migration_plan.waves,
        failed=execution.failed,
        error=execution.error,
    )


def migrate(conn: Connection, options: MigrateOptions | None = None) -> list[AppliedMigration]:
    """Run pending migrations; return those executed, in execution order."""
    return apply(conn, options).applied


def status(conn: Connection, options: MigrateOptions | None = None) -> list[MigrationStatus]:
    """State of every artifact: up-to-date ones first, then scheduled ones by wave."""
    options = options or MigrateOptions()
    migration_plan = plan(conn, options)
    hashes = _ledger(conn, options).repeatable_hashes()
    graph = migration_plan.graph

    statuses = []
    for record in sorted(graph, key=lambda r: (r.wave or 0, r.sort_key)):
        if not graph.runnable(record.id):
            state = MigrationState.APPLIED
        elif not record.should_run:
            state = MigrationState.CASCADED
        elif record.type is MigrationType.REPEATABLE and record.filename in hashes:
            state = MigrationState.CHANGED
        else:
            state = MigrationState.PENDING
        statuses.append(MigrationStatus(record.describe(), state))
    return statuses


__all__ = [
    "DEFAULT_ROOT",
    "MigrateOptions",
    "MigrationPlan",
    "MigrationResult",
    "MigrationState",
    "MigrationStatus",
    "apply",
    "init",
    "migrate",
    "plan",
    "status",
]
