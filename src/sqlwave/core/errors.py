"""
Structured error types for sqlwave.

Every failure the migration engine can surface is a ``SqlwaveError``
subclass carrying a category, a retry flag, structured context and an
optional chained cause, so callers and log pipelines can route on type
instead of parsing messages.

Manifesto:
    - **Typed Error Hierarchy:** One class per failure mode of a run
    - **No Automatic Retries:** Every error is ``retryable=False``; a human
      fixes the artifact, the graph, or the database and re-runs
    - **Rich Context:** Errors carry the migration, file and wave involved
    - **Error Chaining:** Driver exceptions are preserved as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                       SqlwaveError                               │
        │  (category, retryable, context, cause)                           │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  MalformedArtifactError      DependencyResolutionError           │
        │  (PARSE)                     (VALIDATION)                        │
        │                                                                  │
        │  CyclicDependencyError       LedgerUninitializedError            │
        │  (ORCHESTRATION)             (CONFIG)                            │
        │                                                                  │
        │  ExecutionError              ConfigError                         │
        │  (DATABASE)                  (CONFIG)                            │
        └─────────────────────────────────────────────────────────────────┘

When each error stops a run:
    - MalformedArtifactError, DependencyResolutionError,
      CyclicDependencyError and LedgerUninitializedError are raised before
      any SQL executes.
    - ExecutionError is raised (or returned in a result) after the waves
      that completed have already been recorded in the ledger.

Examples:
    >>> error = CyclicDependencyError(["a.sql", "b.sql", "a.sql"])
    >>> error.category
    <ErrorCategory.ORCHESTRATION: 'ORCHESTRATION'>
    >>> error.to_dict()["cycle"]
    ['a.sql', 'b.sql', 'a.sql']

Guardrails:
    ❌ DON'T: Raise bare Exception from engine code
    ✅ DO: Raise the SqlwaveError subclass for the failure mode

    ❌ DON'T: Swallow the driver exception behind ExecutionError
    ✅ DO: Pass it as cause= so the traceback keeps the root cause

Tags:
    error-handling, exception-hierarchy, error-context, sqlwave

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from sqlwave.migrations.model import AppliedMigration


class ErrorCategory(str, Enum):
    """Error categories used for classification and log routing."""

    PARSE = "PARSE"                  # Artifact name or metadata block
    VALIDATION = "VALIDATION"        # Dependency graph references
    ORCHESTRATION = "ORCHESTRATION"  # Runnability / wave computation
    DATABASE = "DATABASE"            # Migration SQL or ledger writes
    CONFIG = "CONFIG"                # Options, settings, missing ledger
    INTERNAL = "INTERNAL"            # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Typed fields cover what a migration failure usually needs for a log line;
    anything else goes into ``metadata``. ``to_dict()`` drops unset fields.

    Attributes:
        migration: Record id involved
        filename: Artifact filename (the ledger join key)
        wave: Wave number the record was scheduled in
        table: Ledger table name
        metadata: Additional key-value pairs
    """

    migration: str | None = None
    filename: str | None = None
    wave: int | None = None
    table: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["migration", "filename", "wave", "table"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class SqlwaveError(Exception):
    """
    Base exception for all sqlwave errors.

    Subclasses set ``default_category``; ``retryable`` defaults to False for
    the whole hierarchy because the engine never retries on its own.

    Examples:
        >>> error = SqlwaveError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(filename="V001__init.sql").context.filename
        'V001__init.sql'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> SqlwaveError:
        """
        Add context to this error (fluent API).

        Usage:
            raise ExecutionError("boom", cause=exc).with_context(
                filename="V001__init.sql", wave=1
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# ARTIFACT ERRORS
# =============================================================================


class MalformedArtifactError(SqlwaveError):
    """An artifact name or its metadata block does not follow the scheme."""

    default_category = ErrorCategory.PARSE

    def __init__(self, filename: str, reason: str | None = None, **kwargs: Any):
        self.filename = filename
        self.reason = reason or "name must match T<version>__<description>.sql with T in V, R, S"
        super().__init__(f"Malformed migration artifact {filename!r}: {self.reason}", **kwargs)
        self.context.filename = filename


# =============================================================================
# GRAPH ERRORS
# =============================================================================


@dataclass(frozen=True, order=True)
class UnresolvedDependency:
    """A ``(record, declared dependency)`` pair that matches no known record."""

    record_id: str
    dependency: str

    def __str__(self) -> str:
        return f"{self.record_id} -> {self.dependency}"


class DependencyResolutionError(SqlwaveError):
    """Declared dependencies do not resolve, or record ids collide.

    ``unresolved`` holds every offending pair so the whole graph can be fixed
    in one pass; ``duplicates`` lists ids declared by more than one artifact.
    """

    default_category = ErrorCategory.VALIDATION

    def __init__(
        self,
        unresolved: list[UnresolvedDependency] | None = None,
        *,
        duplicates: list[str] | None = None,
        **kwargs: Any,
    ):
        self.unresolved = sorted(unresolved or [])
        self.duplicates = sorted(duplicates or [])
        parts = []
        if self.unresolved:
            pairs = ", ".join(str(pair) for pair in self.unresolved)
            parts.append(f"unknown dependencies: {pairs}")
        if self.duplicates:
            parts.append(f"duplicate migration ids: {', '.join(self.duplicates)}")
        super().__init__("Cannot resolve migration graph: " + "; ".join(parts), **kwargs)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.unresolved:
            result["unresolved"] = [
                {"record": pair.record_id, "dependency": pair.dependency}
                for pair in self.unresolved
            ]
        if self.duplicates:
            result["duplicates"] = self.duplicates
        return result


class CyclicDependencyError(SqlwaveError):
    """Raised when runnability or wave computation cannot converge."""

    default_category = ErrorCategory.ORCHESTRATION

    def __init__(self, cycle: list[str], **kwargs: Any):
        self.cycle = cycle
        cycle_str = " -> ".join(cycle)
        super().__init__(f"Cycle detected in migration dependencies: {cycle_str}", **kwargs)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["cycle"] = self.cycle
        return result


# =============================================================================
# LEDGER / EXECUTION ERRORS
# =============================================================================


class LedgerUninitializedError(SqlwaveError):
    """The ledger table does not exist; ``init`` has not been run."""

    default_category = ErrorCategory.CONFIG

    def __init__(self, table: str, **kwargs: Any):
        self.table = table
        super().__init__(
            f"Migration ledger table {table!r} does not exist. Run init first.",
            **kwargs,
        )
        self.context.table = table


class ExecutionError(SqlwaveError):
    """
    A migration's SQL (or its ledger write) failed.

    The failing migration is not recorded. ``applied`` lists what completed
    before the failure, in execution order, and is already in the ledger.
    """

    default_category = ErrorCategory.DATABASE

    def __init__(
        self,
        message: str,
        *,
        migration: AppliedMigration | None = None,
        applied: list[AppliedMigration] | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.migration = migration
        self.applied = list(applied or [])
        if migration is not None:
            self.context.migration = migration.id
            self.context.filename = migration.filename
            self.context.wave = migration.wave


class ConfigError(SqlwaveError):
    """Invalid options or settings."""

    default_category = ErrorCategory.CONFIG


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "SqlwaveError",
    "MalformedArtifactError",
    "UnresolvedDependency",
    "DependencyResolutionError",
    "CyclicDependencyError",
    "LedgerUninitializedError",
    "ExecutionError",
    "ConfigError",
]
