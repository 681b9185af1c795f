"""Migration ledger - the persisted record of what has been applied.

One row per physical execution::

    type          varchar(32)  NOT NULL    versioned | repeatable | seed
    version       varchar(32)
    filename      varchar(512) NOT NULL    join key with artifacts
    hash          varchar(256)             repeatable content hash
    status        varchar(32)  NOT NULL    performed | invalidated
    performed_at  timestamp    NOT NULL    DEFAULT CURRENT_TIMESTAMP

Repeatable artifacts accumulate history: each re-run invalidates the
previous ``performed`` row and inserts a new one, in one transaction. A
partial unique index keeps at most one ``performed`` row per filename while
letting invalidated history rows share the name.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from sqlwave.core.dialect import Dialect, SQLiteDialect
from sqlwave.core.errors import ConfigError, LedgerUninitializedError
from sqlwave.core.logging import get_logger
from sqlwave.core.protocols import Connection
from sqlwave.core.settings import IDENTIFIER_RE
from sqlwave.migrations.model import MigrationRecord, MigrationType

logger = get_logger(__name__)

DEFAULT_TABLE = "migrations"


class LedgerStatus(str, Enum):
    PERFORMED = "performed"
    INVALIDATED = "invalidated"


@dataclass
class LedgerEntry:
    """One ledger row."""

    type: MigrationType
    version: str | None
    filename: str
    hash: str | None
    status: LedgerStatus
    performed_at: Any


class Ledger:
    """Reads and writes the ledger table through a ``Connection``.

    Example::

        import sqlite3
        from sqlwave.migrations.ledger import Ledger

        conn = sqlite3.connect("app.db")
        ledger = Ledger(conn)
        ledger.ensure_schema()
        performed = ledger.exclusions()
    """

    def __init__(
        self,
        conn: Connection,
        table_name: str = DEFAULT_TABLE,
        dialect: Dialect | None = None,
    ) -> None:
        if not IDENTIFIER_RE.match(table_name):
            raise ConfigError(f"Invalid ledger table name: {table_name!r}")
        self._conn = conn
        self.table = table_name
        self.dialect = dialect or SQLiteDialect()

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def ensure_schema(self) -> None:
        """Create the ledger table and its indexes if they don't exist."""
        t = self.table
        self._conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {t} (
                type varchar(32) NOT NULL,
                version varchar(32),
                filename varchar(512) NOT NULL,
                hash varchar(256),
                status varchar(32) NOT NULL,
                performed_at {self.dialect.timestamp_type()} NOT NULL DEFAULT CURRENT_TIMESTAMP
            )
            """
        )
        self._conn.execute(
            f"CREATE INDEX IF NOT EXISTS {t}_type_filename_idx ON {t} (type, filename)"
        )
        self._conn.execute(
            f"CREATE UNIQUE INDEX IF NOT EXISTS {t}_performed_filename_uidx "
            f"ON {t} (filename) WHERE status = 'performed'"
        )
        self._conn.commit()
        logger.info("ledger.initialized", table=t, dialect=self.dialect.name)

    def exists(self) -> bool:
        rows = self._conn.execute(self.dialect.table_exists_query(), (self.table,)).fetchall()
        return bool(rows)

    def require(self) -> None:
        """Raise ``LedgerUninitializedError`` unless the table exists."""
        if not self.exists():
            raise LedgerUninitializedError(self.table)

    # ------------------------------------------------------------------
    # Snapshot reads
    # ------------------------------------------------------------------

    def exclusions(self) -> set[str]:
        """Filenames of performed versioned/seed artifacts."""
        rows = self._conn.execute(
            f"SELECT filename FROM {self.table} WHERE type <> {self.dialect.placeholder(0)} "
            f"AND status = {self.dialect.placeholder(1)}",
            (MigrationType.REPEATABLE.value, LedgerStatus.PERFORMED.value),
        ).fetchall()
        return {row[0] for row in rows}

    def repeatable_hashes(self) -> dict[str, str]:
        """Filename → hash of the current performed row of each repeatable."""
        rows = self._conn.execute(
            f"SELECT filename, hash FROM {self.table} WHERE type = {self.dialect.placeholder(0)} "
            f"AND status = {self.dialect.placeholder(1)}",
            (MigrationType.REPEATABLE.value, LedgerStatus.PERFORMED.value),
        ).fetchall()
        return {row[0]: row[1] for row in rows}

    def entries(self) -> list[LedgerEntry]:
        """Every ledger row, oldest first."""
        rows = self._conn.execute(
            f"SELECT type, version, filename, hash, status, performed_at "
            f"FROM {self.table} ORDER BY performed_at, filename"
        ).fetchall()
        return [
            LedgerEntry(
                type=MigrationType(row[0]),
                version=row[1],
                filename=row[2],
                hash=row[3],
                status=LedgerStatus(row[4]),
                performed_at=row[5],
            )
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def record(self, record: MigrationRecord) -> None:
        """Persist a successful execution of ``record``.

        Repeatable: invalidate the previous performed row(s) and insert the
        new one in a single transaction. Versioned/seed: insert one row.
        Rolls back and re-raises on failure.
        """
        try:
            if record.type.is_repeatable:
                self._conn.execute(
                    f"UPDATE {self.table} SET status = {self.dialect.placeholder(0)} "
                    f"WHERE type = {self.dialect.placeholder(1)} "
                    f"AND filename = {self.dialect.placeholder(2)} "
                    f"AND status = {self.dialect.placeholder(3)}",
                    (
                        LedgerStatus.INVALIDATED.value,
                        MigrationType.REPEATABLE.value,
                        record.filename,
                        LedgerStatus.PERFORMED.value,
                    ),
                )
                self._insert(record, record.hash)
            else:
                self._insert(record, None)
            self._conn.commit()
        except Exception:
            self._conn.rollback()
            raise

    def _insert(self, record: MigrationRecord, content_hash: str | None) -> None:
        self._conn.execute(
            f"INSERT INTO {self.table} (type, version, filename, hash, status) "
            f"VALUES ({self.dialect.placeholders(5)})",
            (
                record.type.value,
                record.version,
                record.filename,
                content_hash,
                LedgerStatus.PERFORMED.value,
            ),
        )


__all__ = ["DEFAULT_TABLE", "Ledger", "LedgerEntry", "LedgerStatus"]
