"""SQLite connection adapter used by the CLI.

Wraps a raw :class:`sqlite3.Connection` so it satisfies both
:class:`~sqlwave.core.protocols.Connection` and
:class:`~sqlwave.core.protocols.ScriptConnection`, and can be used as a
context manager that closes the file on exit.

Usage::

    from sqlwave.core.sqlite_conn import SqliteConnection

    with SqliteConnection("app.db") as conn:
        conn.executescript("CREATE TABLE t (id INTEGER); INSERT INTO t VALUES (1);")
        rows = conn.execute("SELECT * FROM t").fetchall()
"""

from __future__ import annotations

import sqlite3
from typing import Any


class SqliteConnection:
    """Adapter: ``sqlite3.Connection`` → ``ScriptConnection`` protocol."""

    def __init__(self, path: str = ":memory:", *, row_factory: Any = None) -> None:
        self._conn = sqlite3.connect(path)
        if row_factory is not None:
            self._conn.row_factory = row_factory
        self.path = path

    # -- Connection protocol -----------------------------------------------

    def execute(self, sql: str, params: Any = ()) -> sqlite3.Cursor:
        return self._conn.execute(sql, params)

    def executescript(self, sql: str) -> sqlite3.Cursor:
        return self._conn.executescript(sql)

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        self._conn.close()

    # -- convenience -------------------------------------------------------

    @property
    def raw(self) -> sqlite3.Connection:
        """Access the underlying ``sqlite3.Connection`` (e.g. for pragmas)."""
        return self._conn

    def __enter__(self) -> SqliteConnection:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"SqliteConnection({self.path!r})"
