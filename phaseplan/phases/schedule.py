"""Cascade scheduler.

Computes one consistent set of corrected phases for a whole project and
returns only the phases whose dates change.

Sweep:
1. Order phases topologically (ties by start date), refusing cyclic graphs.
2. Visit each phase that has a recorded violation or was already pushed by
   the cascade. Move it later until every incoming bound, evaluated against
   the predecessors' already-corrected dates, holds.
3. Push every successor whose current dates break the bound implied by the
   phase's current dates.

Phases only ever move later and keep their duration, so a bound that holds
stays satisfied once a predecessor has been visited. Callers apply the diff
as one bulk operation and re-evaluate fresh data afterward.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date

from loguru import logger

from phaseplan.phases.correct import DateLookup, latest_incoming_bounds, shift_later
from phaseplan.phases.dates import as_day, days_between, format_day
from phaseplan.phases.errors import CyclicDependencyError
from phaseplan.phases.evaluate import evaluate_in_graph
from phaseplan.phases.graph import PhaseGraph
from phaseplan.phases.invariants import MIN_PHASE_DURATION_DAYS
from phaseplan.phases.logging import log_phase_graph_failure
from phaseplan.phases.models import (
    CascadeChange,
    CascadeResult,
    Dependency,
    Phase,
    PhaseUpdate,
    Violation,
    ViolationKind,
)
from phaseplan.phases.rules import Boundary, rule_for

DateRange = tuple[date, date]


def schedule_fix(
    phases: Iterable[Phase],
    dependencies: Iterable[Dependency],
    violation_map: Mapping[str, list[Violation]],
) -> list[PhaseUpdate]:
    """Compute the bulk correction diff for a project.

    Args:
        phases: All phases of the project
        dependencies: All dependencies of the project
        violation_map: Phase id -> violations, as built by build_violation_map

    Returns:
        One PhaseUpdate per phase whose dates change, in processing order.
        Empty when nothing is violated.

    Raises:
        CyclicDependencyError: If the dependencies contain a cycle
    """
    graph = PhaseGraph(phases, dependencies)
    flagged = {phase_id for phase_id, violations in violation_map.items() if violations}
    if not flagged:
        return []

    try:
        order = graph.topological_order()
    except CyclicDependencyError as err:
        log_phase_graph_failure(err, {"phase_count": len(graph.phases), "flagged_count": len(flagged)})
        raise

    corrected: dict[str, DateRange] = {}
    _sweep(graph, order, flagged, corrected, {})

    updates = [
        PhaseUpdate(id=phase.id, new_start=corrected[phase.id][0], new_end=corrected[phase.id][1])
        for phase in order
        if phase.id in corrected and corrected[phase.id] != (phase.start_date, phase.end_date)
    ]
    logger.info(f"Cascade fix: {len(flagged)} flagged phases, {len(updates)} phases moved")
    return updates


def preview_cascade(
    phase_id: str,
    new_start: date | str,
    new_end: date | str,
    phases: Iterable[Phase],
    dependencies: Iterable[Dependency],
) -> CascadeResult:
    """Preview the phases pushed by moving one phase to new dates.

    Cycles and incoming-bound violations of the change are reported as data
    and block the cascade. Successors are only ever pushed later; moving a
    phase earlier never pulls its dependents along.

    Args:
        phase_id: Phase being moved
        new_start: Proposed first day
        new_end: Proposed last day
        phases: All phases of the project
        dependencies: All dependencies of the project

    Returns:
        CascadeResult listing every other phase whose dates change
    """
    graph = PhaseGraph(phases, dependencies)

    cycles = graph.find_cycles()
    if cycles:
        logger.warning(f"Cascade preview for {phase_id} blocked by {len(cycles)} circular dependencies")

    phase = graph.phases.get(phase_id)
    if phase is None:
        return CascadeResult(circular_dependencies=cycles)

    start, end = as_day(new_start), as_day(new_end)
    errors = [
        violation.message
        for violation in evaluate_in_graph(graph, phase, start, end)
        if violation.kind != ViolationKind.SUCCESSOR
    ]
    if cycles or errors:
        return CascadeResult(circular_dependencies=cycles, validation_errors=errors)

    order = graph.topological_order()
    corrected: dict[str, DateRange] = {phase_id: (start, end)}
    moved_by: dict[str, Dependency] = {}
    _sweep(graph, order, {phase_id}, corrected, moved_by)

    changes: list[CascadeChange] = []
    for candidate in order:
        if candidate.id == phase_id or candidate.id not in corrected:
            continue
        candidate_start, candidate_end = corrected[candidate.id]
        if (candidate_start, candidate_end) == (candidate.start_date, candidate.end_date):
            continue
        dependency = moved_by[candidate.id]
        changes.append(
            CascadeChange(
                phase_id=candidate.id,
                phase_name=candidate.label,
                current_start=candidate.start_date,
                current_end=candidate.end_date,
                new_start=candidate_start,
                new_end=candidate_end,
                dependency_type=dependency.type,
                lag_days=dependency.lag_days,
                affects_count=len(graph.outgoing(candidate.id)),
            )
        )

    return CascadeResult(affected_phases=changes)


def _sweep(
    graph: PhaseGraph,
    order: list[Phase],
    flagged: set[str],
    corrected: dict[str, DateRange],
    moved_by: dict[str, Dependency],
) -> None:
    """Run the forward sweep, filling `corrected` and `moved_by` in place."""

    def current(phase_id: str) -> DateRange:
        if phase_id in corrected:
            return corrected[phase_id]
        phase = graph.phases[phase_id]
        return phase.start_date, phase.end_date

    for phase in order:
        if phase.id not in flagged and phase.id not in corrected:
            continue

        start, end = current(phase.id)
        latest_start, latest_end = latest_incoming_bounds(graph, phase.id, current)
        shifted = shift_later(start, end, _duration(start, end), latest_start, latest_end)
        if shifted != (start, end):
            binding = _first_broken_incoming(graph, phase.id, start, end, current)
            if binding is not None:
                moved_by[phase.id] = binding
            corrected[phase.id] = shifted
            logger.debug(f"Phase {phase.id} moved to {format_day(shifted[0])}..{format_day(shifted[1])}")
        start, end = shifted

        for dependency in graph.outgoing(phase.id):
            successor_id = dependency.successor_phase_id
            bound = rule_for(dependency).successor_bound(start, end, dependency.lag_days)
            successor_start, successor_end = current(successor_id)
            if bound.allows_not_before(successor_start, successor_end):
                continue

            corrected[successor_id] = shift_later(
                successor_start,
                successor_end,
                _duration(successor_start, successor_end),
                bound.day if bound.boundary == Boundary.START else None,
                bound.day if bound.boundary == Boundary.END else None,
            )
            moved_by[successor_id] = dependency
            logger.debug(f"Phase {successor_id} pushed by {phase.id} via {dependency.type.label} dependency")


def _first_broken_incoming(
    graph: PhaseGraph,
    phase_id: str,
    start: date,
    end: date,
    current: DateLookup,
) -> Dependency | None:
    for dependency in graph.incoming(phase_id):
        predecessor_start, predecessor_end = current(dependency.predecessor_phase_id)
        bound = rule_for(dependency).successor_bound(predecessor_start, predecessor_end, dependency.lag_days)
        if not bound.allows_not_before(start, end):
            return dependency
    return None


def _duration(start: date, end: date) -> int:
    return max(MIN_PHASE_DURATION_DAYS, days_between(start, end))


def cascade_updates(
    phase_id: str,
    new_start: date | str,
    new_end: date | str,
    result: CascadeResult,
) -> list[PhaseUpdate]:
    """Turn a cascade preview into a bulk correction diff.

    The moved phase comes first, followed by every phase the cascade pushes.
    Returns an empty list for a blocked preview.
    """
    if result.is_blocked:
        return []
    updates = [PhaseUpdate(id=phase_id, new_start=as_day(new_start), new_end=as_day(new_end))]
    updates.extend(
        PhaseUpdate(id=change.phase_id, new_start=change.new_start, new_end=change.new_end)
        for change in result.affected_phases
    )
    return updates
