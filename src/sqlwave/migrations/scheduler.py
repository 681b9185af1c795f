"""
Wave Scheduler - partition runnable records into ordered execution waves.

Wave 1 holds every runnable record none of whose dependencies is runnable.
Wave k+1 holds every runnable, unscheduled record whose runnable
dependencies all sit in waves ≤ k. Records inside one wave never depend on
each other.

Algorithm:
    Kahn-style layering restricted to the runnable subgraph: count each
    record's runnable dependencies, emit the zero-count frontier as a wave,
    decrement the counts of its dependents, repeat. There is no iteration
    cap; the loop ends when a layer comes out empty. Runnable records left
    over at that point sit on (or behind) a cycle and are reported as
    ``CyclicDependencyError``.

Order inside a wave is deterministic: ``MigrationRecord.sort_key``
(non-repeatable first, then version, versioned before seed, then id).

Design Principles:
- Pure with respect to the database (no I/O)
- Assigns ``wave`` on the records; an assigned wave never changes
- Idempotent for a fixed graph
"""

from __future__ import annotations

from sqlwave.core.errors import CyclicDependencyError, SqlwaveError
from sqlwave.core.logging import get_logger
from sqlwave.migrations.graph import MigrationGraph, find_cycle
from sqlwave.migrations.model import Wave

logger = get_logger(__name__)


def schedule_waves(graph: MigrationGraph) -> list[Wave]:
    """
    Compute the execution waves for a graph and assign ``wave`` numbers.

    Args:
        graph: The run's fact graph (dependencies already validated)

    Returns:
        Waves in execution order; empty when nothing is runnable.

    Raises:
        CyclicDependencyError: Runnable records cannot all be layered.
    """
    runnable = graph.runnable_ids()

    in_degree: dict[str, int] = {
        record_id: len(graph.dependencies(record_id) & runnable)
        for record_id in runnable
    }
    frontier = [record_id for record_id, count in in_degree.items() if count == 0]
    waves: list[Wave] = []

    while frontier:
        number = len(waves) + 1
        ordered = tuple(sorted(frontier, key=lambda rid: graph[rid].sort_key))
        waves.append(Wave(number=number, ids=ordered))
        _assign(graph, ordered, number)

        next_frontier = []
        for record_id in ordered:
            for dependent in graph.dependents(record_id):
                if dependent not in in_degree:
                    continue
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    next_frontier.append(dependent)
        frontier = next_frontier

    scheduled = sum(len(wave) for wave in waves)
    if scheduled != len(runnable):
        leftover = {rid for rid in runnable if graph[rid].wave is None}
        cycle = find_cycle(
            sorted(leftover),
            lambda rid: graph.dependencies(rid) & leftover,
        )
        raise CyclicDependencyError(cycle or sorted(leftover))

    logger.info(
        "scheduler.waves",
        wave_count=len(waves),
        runnable_count=len(runnable),
        sizes=[len(wave) for wave in waves],
    )
    return waves


def _assign(graph: MigrationGraph, ids: tuple[str, ...], number: int) -> None:
    for record_id in ids:
        record = graph[record_id]
        if record.wave is None:
            record.wave = number
        elif record.wave != number:
            raise SqlwaveError(
                f"Record {record_id!r} already scheduled in wave {record.wave}, "
                f"recomputed as wave {number}"
            )
