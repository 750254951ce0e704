"""Constraint evaluator.

Computes every dependency bound a phase's (proposed) dates break, on both
sides of the phase:
- incoming edges (the phase is the successor) give earliest legal dates
- outgoing edges (the phase is the predecessor) give latest legal dates

Broken dates are reported as Violation values, never raised. Equality with a
bound satisfies it; the finish-to-start minimum gap is part of the bound.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date

from loguru import logger

from phaseplan.phases.dates import as_day, format_day
from phaseplan.phases.graph import PhaseGraph
from phaseplan.phases.models import Dependency, Phase, Violation, ViolationKind
from phaseplan.phases.rules import Boundary, rule_for

INVALID_RANGE_MESSAGE = "End date must be after start date"

_VERBS = {Boundary.START: "start", Boundary.END: "finish"}


def evaluate(
    phase: Phase,
    proposed_start: date | str,
    proposed_end: date | str,
    phases: Iterable[Phase],
    dependencies: Iterable[Dependency],
) -> list[Violation]:
    """Return every violation of the proposed dates for one phase.

    Args:
        phase: Phase being edited
        proposed_start: Proposed first day
        proposed_end: Proposed last day
        phases: All phases of the project (lookups only)
        dependencies: All dependencies of the project

    Returns:
        Violations, the range check first, then incoming, then outgoing.
        Empty list means the dates are legal.
    """
    graph = PhaseGraph.around(phase, phases, dependencies)
    return evaluate_in_graph(graph, phase, as_day(proposed_start), as_day(proposed_end))


def build_violation_map(phases: Iterable[Phase], dependencies: Iterable[Dependency]) -> dict[str, list[Violation]]:
    """Evaluate every phase against its own persisted dates.

    Returns:
        Mapping of phase id to its violations, only for phases that have any
    """
    graph = PhaseGraph(phases, dependencies)
    violation_map: dict[str, list[Violation]] = {}
    for phase in graph.phases.values():
        violations = evaluate_in_graph(graph, phase, phase.start_date, phase.end_date)
        if violations:
            violation_map[phase.id] = violations

    logger.info(f"Evaluated {len(graph.phases)} phases: {len(violation_map)} with violations")
    return violation_map


def evaluate_in_graph(graph: PhaseGraph, phase: Phase, start: date, end: date) -> list[Violation]:
    """Evaluate proposed dates against an already-built graph."""
    violations: list[Violation] = []

    if end <= start:
        violations.append(
            Violation(
                phase_id=phase.id,
                message=INVALID_RANGE_MESSAGE,
                kind=ViolationKind.INVALID_RANGE,
            )
        )

    for dependency in graph.incoming(phase.id):
        predecessor = graph.phases[dependency.predecessor_phase_id]
        rule = rule_for(dependency)
        bound = rule.successor_bound(predecessor.start_date, predecessor.end_date, dependency.lag_days)
        if not bound.allows_not_before(start, end):
            violations.append(
                Violation(
                    phase_id=phase.id,
                    dependency_id=dependency.id,
                    kind=ViolationKind.PREDECESSOR,
                    required_date=bound.day,
                    message=(
                        f'Phase "{phase.label}" cannot {_VERBS[bound.boundary]} before {format_day(bound.day)} '
                        f'({dependency.type.label} dependency on "{predecessor.label}", '
                        f"{rule.effective_lag(dependency.lag_days)} lag days)"
                    ),
                )
            )

    for dependency in graph.outgoing(phase.id):
        successor = graph.phases[dependency.successor_phase_id]
        rule = rule_for(dependency)
        bound = rule.predecessor_bound(successor.start_date, successor.end_date, dependency.lag_days)
        if not bound.allows_not_after(start, end):
            violations.append(
                Violation(
                    phase_id=phase.id,
                    dependency_id=dependency.id,
                    kind=ViolationKind.SUCCESSOR,
                    required_date=bound.day,
                    message=(
                        f'Phase "{phase.label}" cannot {_VERBS[bound.boundary]} after {format_day(bound.day)} '
                        f'({dependency.type.label} dependency of "{successor.label}", '
                        f"{rule.effective_lag(dependency.lag_days)} lag days)"
                    ),
                )
            )

    return violations
