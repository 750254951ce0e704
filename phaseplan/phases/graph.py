"""Phase dependency graph.

Indexes dependencies by phase in both directions and provides the graph
algorithms the scheduler relies on:
- topological order (Kahn's algorithm, ties broken by start date then id)
- cycle detection (depth-first search, one path per back edge)
- reachability check used to reject an edge that would close a cycle

Dependencies that reference a phase absent from the loaded set are dropped
here, so partial data never fails the rest of the computation.
"""

from __future__ import annotations

import heapq
from collections.abc import Iterable
from datetime import date

from loguru import logger

from phaseplan.phases.errors import CyclicDependencyError
from phaseplan.phases.models import Dependency, Phase


class PhaseGraph:
    """Read-only index over one project's phases and dependencies."""

    def __init__(self, phases: Iterable[Phase], dependencies: Iterable[Dependency]):
        self.phases: dict[str, Phase] = {phase.id: phase for phase in phases}
        self._incoming: dict[str, list[Dependency]] = {phase_id: [] for phase_id in self.phases}
        self._outgoing: dict[str, list[Dependency]] = {phase_id: [] for phase_id in self.phases}
        self.skipped: list[Dependency] = []

        for dependency in dependencies:
            if (
                dependency.predecessor_phase_id not in self.phases
                or dependency.successor_phase_id not in self.phases
            ):
                logger.debug(
                    f"Skipping dependency {dependency.id}: references missing phase "
                    f"({dependency.predecessor_phase_id} -> {dependency.successor_phase_id})"
                )
                self.skipped.append(dependency)
                continue
            self._outgoing[dependency.predecessor_phase_id].append(dependency)
            self._incoming[dependency.successor_phase_id].append(dependency)

    @classmethod
    def around(cls, phase: Phase, phases: Iterable[Phase], dependencies: Iterable[Dependency]) -> PhaseGraph:
        """Build a graph that is guaranteed to contain `phase` (e.g. a phase not yet saved)."""
        phase_list = list(phases)
        if all(candidate.id != phase.id for candidate in phase_list):
            phase_list.append(phase)
        return cls(phase_list, dependencies)

    def incoming(self, phase_id: str) -> list[Dependency]:
        """Dependencies where the phase is the successor."""
        return self._incoming.get(phase_id, [])

    def outgoing(self, phase_id: str) -> list[Dependency]:
        """Dependencies where the phase is the predecessor."""
        return self._outgoing.get(phase_id, [])

    def find_cycles(self) -> list[str]:
        """Return one human-readable path per cycle found, empty if acyclic."""
        cycles: list[str] = []
        visited: set[str] = set()
        on_stack: set[str] = set()

        def dfs(phase_id: str, path: list[str]) -> None:
            if phase_id in on_stack:
                loop = [*path[path.index(phase_id) :], phase_id]
                labels = " -> ".join(self.phases[node].label for node in loop)
                cycles.append(f"Circular dependency detected: {labels}")
                return
            if phase_id in visited:
                return

            visited.add(phase_id)
            on_stack.add(phase_id)
            for dependency in self.outgoing(phase_id):
                dfs(dependency.successor_phase_id, [*path, phase_id])
            on_stack.discard(phase_id)

        for phase_id in sorted(self.phases):
            if phase_id not in visited:
                dfs(phase_id, [])

        return cycles

    def topological_order(self) -> list[Phase]:
        """Order phases so every predecessor precedes its successors.

        Among phases that are ready at the same time, the earlier start date
        (then the smaller id) goes first.

        Raises:
            CyclicDependencyError: If the dependencies contain a cycle
        """
        in_degree = {phase_id: len(self.incoming(phase_id)) for phase_id in self.phases}
        ready = [self._sort_key(phase_id) for phase_id, degree in in_degree.items() if degree == 0]
        heapq.heapify(ready)

        order: list[Phase] = []
        while ready:
            _, phase_id = heapq.heappop(ready)
            order.append(self.phases[phase_id])
            for dependency in self.outgoing(phase_id):
                successor_id = dependency.successor_phase_id
                in_degree[successor_id] -= 1
                if in_degree[successor_id] == 0:
                    heapq.heappush(ready, self._sort_key(successor_id))

        if len(order) != len(self.phases):
            raise CyclicDependencyError(self.find_cycles())

        return order

    def would_create_cycle(self, predecessor_id: str, successor_id: str) -> bool:
        """True if adding predecessor -> successor would close a cycle."""
        if predecessor_id == successor_id:
            return True

        stack = [successor_id]
        seen: set[str] = set()
        while stack:
            phase_id = stack.pop()
            if phase_id == predecessor_id:
                return True
            if phase_id in seen:
                continue
            seen.add(phase_id)
            stack.extend(dependency.successor_phase_id for dependency in self.outgoing(phase_id))

        return False

    def _sort_key(self, phase_id: str) -> tuple[date, str]:
        phase = self.phases[phase_id]
        return (phase.start_date, phase.id)
