"""
sqlwave - dependency-aware SQL migrations applied in waves.

Artifacts are plain ``.sql`` files named ``V001__...``, ``S001__...`` or
``R__...``. Each may declare dependencies in a leading metadata block;
sqlwave works out what must (re)run, groups it into waves and records every
execution in a ledger table.

Quick start::

    import sqlite3
    import sqlwave

    conn = sqlite3.connect("app.db")
    sqlwave.init(conn)
    for m in sqlwave.migrate(conn, sqlwave.MigrateOptions(root="db/migrations")):
        print(m.wave, m.filename)
"""

__version__ = "0.1.0"

from sqlwave.core.errors import (  # noqa: E402
    ConfigError,
    CyclicDependencyError,
    DependencyResolutionError,
    ExecutionError,
    LedgerUninitializedError,
    MalformedArtifactError,
    SqlwaveError,
)
from sqlwave.migrations.events import EventKind, MigrationEvent  # noqa: E402
from sqlwave.migrations.model import AppliedMigration, MigrationType  # noqa: E402
from sqlwave.migrations.runner import (  # noqa: E402
    MigrateOptions,
    MigrationPlan,
    MigrationResult,
    MigrationStatus,
    apply,
    init,
    migrate,
    plan,
    status,
)

__all__ = [
    "__version__",
    "init",
    "plan",
    "apply",
    "migrate",
    "status",
    "MigrateOptions",
    "MigrationPlan",
    "MigrationResult",
    "MigrationStatus",
    "AppliedMigration",
    "MigrationType",
    "EventKind",
    "MigrationEvent",
    "SqlwaveError",
    "MalformedArtifactError",
    "DependencyResolutionError",
    "CyclicDependencyError",
    "LedgerUninitializedError",
    "ExecutionError",
    "ConfigError",
]
