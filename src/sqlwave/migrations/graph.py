"""
Fact graph over migration records, with the runnability fixpoint.

A ``MigrationGraph`` is built per run from the loaded records and owned by
the caller; it is discarded after scheduling and execution.

Predicates:
    direct_dependency(a, b)   b is in a.dependencies
    runnable(e)               e must be (re)applied in this run
    in_wave(e)                e has been assigned a wave

Runnability:
    A record is runnable when the ledger says it should run. A repeatable
    record whose text is unchanged is also runnable when

    - one of its direct dependencies is runnable (dependency cascade): a
      view over a table that is about to change is re-created after it;
    - a pending versioned/seed record directly depends on it (prerequisite
      refresh): the view is re-applied before the change that names it.

    The cascade is a fixpoint: seeds are the ledger verdicts plus the
    refreshed prerequisites, and runnability is pushed along reverse edges
    to repeatable dependents until no record changes. Propagation only
    ever adds records, so it terminates; before it starts, the repeatable
    propagation subgraph is checked for cycles.

Architecture:
    ::

        records ──▶ MigrationGraph
                      ├── _records      id → MigrationRecord
                      ├── _dependents   id → ids depending on it
                      └── runnable_ids()  (cached fixpoint)
                                 │
                                 ▼
                        scheduler.schedule_waves()

Tags:
    graph, dependencies, fixpoint, cycle-detection, sqlwave
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Iterable, Iterator

from sqlwave.core.errors import CyclicDependencyError, DependencyResolutionError
from sqlwave.core.logging import get_logger
from sqlwave.migrations.model import MigrationRecord, MigrationType

logger = get_logger(__name__)


def find_cycle(
    nodes: Iterable[str],
    edges: Callable[[str], Iterable[str]],
) -> list[str] | None:
    """
    Find one cycle in a directed graph, or return None.

    Depth-first search with three-colour marking:
    - WHITE (0): Unvisited
    - GRAY (1): On the current path
    - BLACK (2): Finished

    Reaching a GRAY node closes a cycle. The walk uses an explicit stack so
    long dependency chains do not hit the recursion limit.

    Returns:
        The cycle as a path whose first and last elements are the same node.
    """
    WHITE, GRAY, BLACK = 0, 1, 2
    node_list = list(nodes)
    color = dict.fromkeys(node_list, WHITE)

    for start in node_list:
        if color[start] != WHITE:
            continue
        path = [start]
        color[start] = GRAY
        stack: list[Iterator[str]] = [iter(sorted(edges(start)))]

        while stack:
            neighbor = next(stack[-1], None)
            if neighbor is None:
                stack.pop()
                color[path.pop()] = BLACK
                continue
            state = color.get(neighbor)
            if state is None or state == BLACK:
                continue
            if state == GRAY:
                return path[path.index(neighbor):] + [neighbor]
            color[neighbor] = GRAY
            path.append(neighbor)
            stack.append(iter(sorted(edges(neighbor))))

    return None


class MigrationGraph:
    """Records indexed by id, with dependency and runnability queries.

    Example::

        graph = MigrationGraph(records)
        graph.runnable("R__users_view.sql")
        graph.direct_dependency("V002__add_email.sql", "V001__users.sql")

    Raises:
        DependencyResolutionError: Two records share an id.
    """

    def __init__(self, records: Iterable[MigrationRecord]) -> None:
        self._records: dict[str, MigrationRecord] = {}
        duplicates = set()
        for record in records:
            if record.id in self._records:
                duplicates.add(record.id)
            self._records[record.id] = record
        if duplicates:
            raise DependencyResolutionError(duplicates=sorted(duplicates))

        self._dependents: dict[str, set[str]] = {record_id: set() for record_id in self._records}
        for record in self._records.values():
            for dep in record.dependencies:
                if dep in self._dependents:
                    self._dependents[dep].add(record.id)

        self._runnable: frozenset[str] | None = None

    # -- container protocol ------------------------------------------------

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[MigrationRecord]:
        return iter(self._records.values())

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._records

    def __getitem__(self, record_id: str) -> MigrationRecord:
        return self._records[record_id]

    @property
    def records(self) -> list[MigrationRecord]:
        return list(self._records.values())

    # -- predicates --------------------------------------------------------

    def direct_dependency(self, a: str, b: str) -> bool:
        """True when record ``a`` declares ``b`` as a dependency."""
        return b in self._records[a].dependencies

    def dependencies(self, record_id: str) -> frozenset[str]:
        """Declared dependencies of a record that resolve to known records."""
        return frozenset(d for d in self._records[record_id].dependencies if d in self._records)

    def dependents(self, record_id: str) -> frozenset[str]:
        """Records that directly depend on ``record_id``."""
        return frozenset(self._dependents[record_id])

    def in_wave(self, record_id: str) -> bool:
        return self._records[record_id].wave is not None

    def runnable(self, record_id: str) -> bool:
        return record_id in self.runnable_ids()

    def runnable_ids(self) -> frozenset[str]:
        """Ids of every record that must (re)apply in this run.

        Raises:
            CyclicDependencyError: The repeatable propagation subgraph has a cycle.
        """
        if self._runnable is None:
            self._runnable = self._compute_runnable()
        return self._runnable

    def cascaded_ids(self) -> frozenset[str]:
        """Runnable records the ledger alone would have skipped."""
        return frozenset(
            record_id for record_id in self.runnable_ids()
            if not self._records[record_id].should_run
        )

    # -- fixpoint ----------------------------------------------------------

    def _is_repeatable(self, record_id: str) -> bool:
        return self._records[record_id].type is MigrationType.REPEATABLE

    def _propagation_edges(self, record_id: str) -> list[str]:
        return [d for d in self.dependencies(record_id) if self._is_repeatable(d)]

    def _compute_runnable(self) -> frozenset[str]:
        repeatables = [r.id for r in self._records.values() if r.type.is_repeatable]
        cycle = find_cycle(repeatables, self._propagation_edges)
        if cycle:
            raise CyclicDependencyError(cycle)

        runnable = {r.id for r in self._records.values() if r.should_run}

        # Prerequisite refresh
        for record_id in list(runnable):
            if self._is_repeatable(record_id):
                continue
            for dep in self.dependencies(record_id):
                if self._is_repeatable(dep):
                    runnable.add(dep)

        # Dependency cascade, pushed along reverse edges until stable
        queue = deque(sorted(runnable))
        while queue:
            record_id = queue.popleft()
            for dependent in sorted(self._dependents[record_id]):
                if dependent not in runnable and self._is_repeatable(dependent):
                    runnable.add(dependent)
                    queue.append(dependent)

        logger.debug(
            "graph.runnable",
            record_count=len(self._records),
            runnable_count=len(runnable),
            cascaded=sorted(r for r in runnable if not self._records[r].should_run),
        )
        return frozenset(runnable)


__all__ = ["MigrationGraph", "find_cycle"]
