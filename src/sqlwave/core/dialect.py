"""SQL dialects for the statements sqlwave writes itself.

Migration bodies are executed verbatim. Only the ledger's own SQL (DDL,
inserts, snapshot reads, the table-exists probe) changes between backends,
and a ``Dialect`` supplies those fragments so the ledger never imports a
driver.

    backend      marker   performed_at type           table probe
    ──────────   ──────   ────────────────────────    ──────────────────────
    sqlite       ?        timestamp                   sqlite_master
    postgresql   %s       timestamp with time zone    information_schema

Examples:
    >>> from sqlwave.core.dialect import get_dialect
    >>> get_dialect("postgresql").placeholders(2)
    '%s, %s'

Tags:
    dialect, sql, portability, ledger, sqlwave
"""

from __future__ import annotations

from typing import ClassVar, Protocol, runtime_checkable


@runtime_checkable
class Dialect(Protocol):
    """What the ledger needs from a backend."""

    @property
    def name(self) -> str: ...

    def placeholder(self, index: int) -> str:
        """Bind marker for the ``index``-th parameter (0-based)."""
        ...

    def placeholders(self, count: int) -> str: ...

    def timestamp_type(self) -> str: ...

    def table_exists_query(self) -> str:
        """Query taking the table name as its only parameter; non-empty if it exists."""
        ...


class _MarkerDialect:
    """Dialects whose bind marker does not depend on position."""

    dialect_name: ClassVar[str]
    marker: ClassVar[str]
    performed_at_type: ClassVar[str] = "timestamp"
    exists_sql: ClassVar[str]

    @property
    def name(self) -> str:
        return self.dialect_name

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return self.marker

    def placeholders(self, count: int) -> str:
        return ", ".join([self.marker] * count)

    def timestamp_type(self) -> str:
        return self.performed_at_type

    def table_exists_query(self) -> str:
        return self.exists_sql

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class SQLiteDialect(_MarkerDialect):
    dialect_name = "sqlite"
    marker = "?"
    exists_sql = "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?"


class PostgreSQLDialect(_MarkerDialect):
    """psycopg-style ``%s`` markers; the probe is limited to ``current_schema()``."""

    dialect_name = "postgresql"
    marker = "%s"
    performed_at_type = "timestamp with time zone"
    exists_sql = (
        "SELECT table_name FROM information_schema.tables "
        "WHERE table_schema = current_schema() AND table_name = %s"
    )


_ALIASES = {"postgres": "postgresql", "sqlite3": "sqlite"}

_registry: dict[str, Dialect] = {
    "sqlite": SQLiteDialect(),
    "postgresql": PostgreSQLDialect(),
}


def get_dialect(name: str) -> Dialect:
    """Look up a dialect by name (case-insensitive; ``postgres`` and ``sqlite3`` are aliases).

    Raises:
        ValueError: The name is not registered.
    """
    key = name.lower()
    key = _ALIASES.get(key, key)
    try:
        return _registry[key]
    except KeyError:
        raise ValueError(f"Unknown dialect {name!r}; known: {', '.join(sorted(_registry))}") from None


def register_dialect(name: str, dialect: Dialect) -> None:
    """Make a custom dialect available to ``get_dialect`` and ``SQLWAVE_DIALECT``."""
    _registry[name.lower()] = dialect


__all__ = [
    "Dialect",
    "SQLiteDialect",
    "PostgreSQLDialect",
    "get_dialect",
    "register_dialect",
]
