"""Dependency validation - every declared dependency must name a known record.

Runs before the graph is scheduled, so a run with an unresolved reference
is refused before any SQL executes. All offending pairs are collected and
reported together.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlwave.core.errors import DependencyResolutionError, UnresolvedDependency
from sqlwave.core.logging import get_logger
from sqlwave.migrations.model import MigrationRecord

logger = get_logger(__name__)


def find_unresolved(records: Iterable[MigrationRecord]) -> list[UnresolvedDependency]:
    """Return every ``(record, dependency)`` pair whose dependency id is unknown."""
    records = list(records)
    known = {record.id for record in records}
    return sorted(
        UnresolvedDependency(record.id, dep)
        for record in records
        for dep in record.dependencies
        if dep not in known
    )


def validate_dependencies(records: Iterable[MigrationRecord]) -> None:
    """
    Refuse the record set if any dependency does not resolve.

    Raises:
        DependencyResolutionError: With ``unresolved`` listing every pair.
    """
    unresolved = find_unresolved(records)
    if unresolved:
        logger.error(
            "validator.unresolved",
            unresolved=[str(pair) for pair in unresolved],
        )
        raise DependencyResolutionError(unresolved)
