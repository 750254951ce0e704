"""Single-phase corrector.

Suggests the smallest later shift of one phase that satisfies all of its
incoming dependencies at once, keeping the phase's duration.

The binding constraint is found by reduction, not by applying dependencies
one after another: the latest required start over all start-constraining
edges and the latest required end over all end-constraining edges are
computed independently, and the phase moves to whichever is later once the
duration is accounted for. The result therefore does not depend on the order
dependencies are listed in.

Outgoing dependencies are ignored here; pushing successors is the cascade
scheduler's job.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import date

from phaseplan.phases.dates import add_days, as_day, days_between
from phaseplan.phases.graph import PhaseGraph
from phaseplan.phases.invariants import MIN_PHASE_DURATION_DAYS
from phaseplan.phases.models import CorrectedDates, Dependency, Phase
from phaseplan.phases.rules import Boundary, rule_for

DateLookup = Callable[[str], tuple[date, date]]


def correct(
    phase: Phase,
    proposed_start: date | str,
    proposed_end: date | str,
    phases: Iterable[Phase],
    dependencies: Iterable[Dependency],
) -> CorrectedDates:
    """Compute corrected dates for one phase.

    Args:
        phase: Phase being edited
        proposed_start: Proposed first day
        proposed_end: Proposed last day
        phases: All phases of the project (predecessor lookups)
        dependencies: All dependencies of the project

    Returns:
        CorrectedDates; `changed` is False when the proposal already
        satisfies every incoming dependency
    """
    start = as_day(proposed_start)
    end = as_day(proposed_end)
    duration = max(MIN_PHASE_DURATION_DAYS, days_between(start, end))

    graph = PhaseGraph.around(phase, phases, dependencies)

    def persisted(phase_id: str) -> tuple[date, date]:
        predecessor = graph.phases[phase_id]
        return predecessor.start_date, predecessor.end_date

    latest_start, latest_end = latest_incoming_bounds(graph, phase.id, persisted)
    new_start, new_end = shift_later(start, end, duration, latest_start, latest_end)
    return CorrectedDates(start=new_start, end=new_end, changed=(new_start, new_end) != (start, end))


def latest_incoming_bounds(
    graph: PhaseGraph,
    phase_id: str,
    dates_of: DateLookup,
) -> tuple[date | None, date | None]:
    """Latest required start and latest required end over all incoming edges.

    Args:
        graph: Phase graph
        phase_id: Successor phase
        dates_of: Returns (start, end) currently in effect for a predecessor

    Returns:
        (latest_start, latest_end); None where no edge constrains that boundary
    """
    latest_start: date | None = None
    latest_end: date | None = None
    for dependency in graph.incoming(phase_id):
        predecessor_start, predecessor_end = dates_of(dependency.predecessor_phase_id)
        bound = rule_for(dependency).successor_bound(predecessor_start, predecessor_end, dependency.lag_days)
        if bound.boundary == Boundary.START:
            latest_start = bound.day if latest_start is None else max(latest_start, bound.day)
        else:
            latest_end = bound.day if latest_end is None else max(latest_end, bound.day)
    return latest_start, latest_end


def shift_later(
    start: date,
    end: date,
    duration: int,
    latest_start: date | None,
    latest_end: date | None,
) -> tuple[date, date]:
    """Move (start, end) later just enough to meet both bounds.

    Dates that already meet both bounds are returned untouched. Otherwise the
    new range is exactly `duration` days long.
    """
    start_ok = latest_start is None or start >= latest_start
    end_ok = latest_end is None or end >= latest_end
    if start_ok and end_ok:
        return start, end

    candidates = [start]
    if latest_start is not None:
        candidates.append(latest_start)
    if latest_end is not None:
        candidates.append(add_days(latest_end, -duration))
    new_start = max(candidates)
    return new_start, add_days(new_start, duration)
