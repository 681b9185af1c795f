"""
Shared pytest fixtures for sqlwave tests.

This module provides:
- An in-memory sqlite3 connection, with and without an initialised ledger
- A temporary artifact directory and a helper to write artifacts into it
- Settings cache cleanup for test isolation

Usage:
    def test_something(ledger_conn, artifacts):
        artifacts.write("V001__create_users.sql", "CREATE TABLE users (id INTEGER);")
        applied = migrate(ledger_conn, artifacts.options())
"""

from __future__ import annotations

import json
import os
import sqlite3
from collections.abc import Generator, Iterable
from pathlib import Path

import pytest

from sqlwave.core.settings import clear_settings_cache
from sqlwave.migrations.events import MigrationEvent
from sqlwave.migrations.model import MigrationRecord, MigrationType
from sqlwave.migrations.runner import MigrateOptions, init


class ArtifactDir:
    """A temporary migrations directory."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def write(
        self,
        name: str,
        sql: str,
        *,
        id: str | None = None,
        dependencies: Iterable[str] | None = None,
    ) -> Path:
        """Write an artifact, prefixing a metadata block when id/dependencies are given."""
        metadata: dict = {}
        if id is not None:
            metadata["id"] = id
        if dependencies is not None:
            metadata["dependencies"] = list(dependencies)
        body = f"/* {json.dumps(metadata)} */\n{sql}" if metadata else sql
        target = self.path / name
        target.write_text(body, encoding="utf-8")
        return target

    def options(self, **kwargs) -> MigrateOptions:
        return MigrateOptions(root=self.path, **kwargs)


class EventRecorder:
    """``log_callback`` that keeps every event."""

    def __init__(self) -> None:
        self.events: list[MigrationEvent] = []

    def __call__(self, event: MigrationEvent) -> None:
        self.events.append(event)

    def kinds(self, record_id: str) -> list[str]:
        return [e.kind.value for e in self.events if e.migration.id == record_id]


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _clean_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Drop cached settings and any SQLWAVE_* variables from the environment."""
    for key in list(os.environ):
        if key.startswith("SQLWAVE_"):
            monkeypatch.delenv(key)
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def conn() -> Generator[sqlite3.Connection, None, None]:
    """Fresh in-memory SQLite connection (no ledger)."""
    connection = sqlite3.connect(":memory:")
    yield connection
    connection.close()


@pytest.fixture
def ledger_conn(conn: sqlite3.Connection) -> sqlite3.Connection:
    """In-memory SQLite connection with the default ledger table created."""
    init(conn)
    return conn


# =============================================================================
# Artifacts
# =============================================================================


@pytest.fixture
def artifacts(tmp_path: Path) -> ArtifactDir:
    path = tmp_path / "migrations"
    path.mkdir()
    return ArtifactDir(path)


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


# =============================================================================
# Records
# =============================================================================


def _make_record(
    record_id: str,
    kind: str = "V",
    *,
    dependencies: Iterable[str] = (),
    should_run: bool = True,
    version: str | None = None,
    sql: str = "SELECT 1;",
) -> MigrationRecord:
    migration_type = MigrationType.from_prefix(kind)
    if version is None and kind != "R":
        version = "".join(ch for ch in record_id if ch.isdigit()) or "1"
    return MigrationRecord(
        id=record_id,
        filename=f"{record_id}.sql",
        type=migration_type,
        version=version,
        description=record_id,
        sql=sql,
        dependencies=frozenset(dependencies),
        should_run=should_run,
    )


@pytest.fixture
def make_record():
    """Factory for in-memory records: ``make_record("A", "R", dependencies=["B"])``."""
    return _make_record
