"""
sqlwave migrations -- artifacts to ledger, one wave at a time.

Pipeline::

    ArtifactSource ──▶ loader ──▶ validator ──▶ MigrationGraph ──▶ scheduler ──▶ executor
      (names, read)    records    unresolved    runnable fixpoint    waves        SQL + ledger
                         ▲                                                          │
                         └──────────────── Ledger snapshot ◀────────────────────────┘

Modules:
    model.py        MigrationType, MigrationRecord, AppliedMigration, Wave
    naming.py       Artifact filename tokenization
    metadata.py     Leading ``/* {json} */`` block
    sources.py      Directory and package-resource sources
    loader.py       Records plus the ledger's ``should_run`` verdict
    ledger.py       Ledger table schema, snapshot reads and writes
    validator.py    Unknown-dependency detection
    graph.py        Dependency queries and the runnable fixpoint
    scheduler.py    Wave layering
    events.py       Progress events and the default log callback
    executor.py     Fail-fast wave execution
    runner.py       init / plan / apply / migrate / status
    visualizer.py   Mermaid and DOT rendering of a graph
"""

from sqlwave.migrations.events import EventKind, LogCallback, MigrationEvent, log_event
from sqlwave.migrations.graph import MigrationGraph, find_cycle
from sqlwave.migrations.ledger import DEFAULT_TABLE, Ledger, LedgerEntry, LedgerStatus
from sqlwave.migrations.loader import build_record, load_from_source, load_records
from sqlwave.migrations.model import AppliedMigration, MigrationRecord, MigrationType, Wave
from sqlwave.migrations.runner import (
    MigrateOptions,
    MigrationPlan,
    MigrationResult,
    MigrationState,
    MigrationStatus,
    apply,
    init,
    migrate,
    plan,
    status,
)
from sqlwave.migrations.scheduler import schedule_waves
from sqlwave.migrations.sources import DirectorySource, PackageSource, source_for
from sqlwave.migrations.validator import find_unresolved, validate_dependencies
from sqlwave.migrations.visualizer import visualize_dot, visualize_mermaid

__all__ = [
    # model
    "AppliedMigration",
    "MigrationRecord",
    "MigrationType",
    "Wave",
    # pipeline
    "DirectorySource",
    "PackageSource",
    "source_for",
    "build_record",
    "load_records",
    "load_from_source",
    "find_unresolved",
    "validate_dependencies",
    "MigrationGraph",
    "find_cycle",
    "schedule_waves",
    # ledger
    "DEFAULT_TABLE",
    "Ledger",
    "LedgerEntry",
    "LedgerStatus",
    # events
    "EventKind",
    "LogCallback",
    "MigrationEvent",
    "log_event",
    # runner
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
    # rendering
    "visualize_dot",
    "visualize_mermaid",
]
