"""sqlwave core -- errors, logging, hashing, settings and database seams.

Architecture::

    Layer 1 -- Type System & Errors
        errors.py          Structured error hierarchy (SqlwaveError and friends)
        protocols.py       Connection / ScriptConnection protocols

    Layer 2 -- Database
        dialect.py         Ledger SQL fragments (SQLite, PostgreSQL)
        sqlite_conn.py     SQLite adapter used by the CLI

    Layer 3 -- Ambient
        hashing.py         Content hash for repeatable change detection
        logging.py         structlog configuration
        settings.py        pydantic-settings configuration (SQLWAVE_*)

Nothing here knows about migration graphs; ``sqlwave.migrations`` builds
on these modules.
"""

from sqlwave.core.errors import (
    ConfigError,
    CyclicDependencyError,
    DependencyResolutionError,
    ErrorCategory,
    ErrorContext,
    ExecutionError,
    LedgerUninitializedError,
    MalformedArtifactError,
    SqlwaveError,
    UnresolvedDependency,
)
from sqlwave.core.hashing import hash_content
from sqlwave.core.protocols import Connection, ScriptConnection

__all__ = [
    "ConfigError",
    "CyclicDependencyError",
    "DependencyResolutionError",
    "ErrorCategory",
    "ErrorContext",
    "ExecutionError",
    "LedgerUninitializedError",
    "MalformedArtifactError",
    "SqlwaveError",
    "UnresolvedDependency",
    "hash_content",
    "Connection",
    "ScriptConnection",
]
