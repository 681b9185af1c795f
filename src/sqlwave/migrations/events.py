"""Progress events emitted while migrations execute.

Each migration produces ``start`` → ``progress`` → ``done``, or ``start`` →
``progress`` → ``error``. Callers pass any callable taking a
``MigrationEvent``; the default writes structured log lines.

    kind       data
    ─────────  ─────────────────────────────
    start      None
    progress   the SQL text about to run
    done       {"ms": elapsed milliseconds}
    error      failure detail (str)
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from sqlwave.core.logging import get_logger
from sqlwave.migrations.model import AppliedMigration

logger = get_logger("sqlwave.migrations")


class EventKind(str, Enum):
    START = "start"
    PROGRESS = "progress"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class MigrationEvent:
    kind: EventKind
    migration: AppliedMigration
    data: Any = None


LogCallback = Callable[[MigrationEvent], None]


def log_event(event: MigrationEvent) -> None:
    """Default callback: one structured log line per event."""
    m = event.migration
    fields = {
        "migration": m.id,
        "type": m.type.value,
        "version": m.version,
        "wave": m.wave,
    }
    if event.kind is EventKind.START:
        logger.info("migration.start", description=m.description, **fields)
    elif event.kind is EventKind.PROGRESS:
        logger.debug("migration.sql", sql=event.data, **fields)
    elif event.kind is EventKind.DONE:
        logger.info("migration.done", elapsed_ms=(event.data or {}).get("ms"), **fields)
    elif event.kind is EventKind.ERROR:
        logger.error("migration.failed", error=event.data, **fields)
