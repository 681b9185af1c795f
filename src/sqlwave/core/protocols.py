"""
Structural protocols for the database connection sqlwave drives.

The engine never imports a driver. It needs an object that can execute
a statement with bound parameters and hand back a cursor, and that can
commit and roll back. ``sqlite3.Connection`` and ``psycopg.Connection``
both satisfy ``Connection`` as-is.

Architecture:
    ::

        Connection Protocol:
        ┌────────────────────────────────────────────────────────┐
        │ execute(sql, params)   → cursor (fetchone / fetchall)  │
        │ commit()               → Commit transaction            │
        │ rollback()             → Rollback transaction          │
        └────────────────────────────────────────────────────────┘

        ScriptConnection Protocol (adds):
        ┌────────────────────────────────────────────────────────┐
        │ executescript(sql)     → Run a multi-statement body    │
        └────────────────────────────────────────────────────────┘

    A migration body usually holds several statements. Drivers whose
    ``execute`` accepts one statement only (sqlite3) expose
    ``executescript`` and the executor prefers it when present.

Tags:
    protocol, connection, database, sqlwave
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Connection(Protocol):
    """Minimal synchronous DB-API style connection."""

    def execute(self, sql: str, params: Any = ...) -> Any:
        """Execute one statement with optional parameters; return a cursor."""
        ...

    def commit(self) -> None:
        """Commit the current transaction."""
        ...

    def rollback(self) -> None:
        """Roll back the current transaction."""
        ...


@runtime_checkable
class ScriptConnection(Connection, Protocol):
    """Connection that can run a multi-statement SQL script."""

    def executescript(self, sql: str) -> Any:
        """Execute every statement in ``sql``."""
        ...


__all__ = ["Connection", "ScriptConnection"]
