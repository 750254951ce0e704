"""Per-type dependency rules.

Every dependency type has the same shape: the successor boundary named by
`target` may not fall before the predecessor boundary named by `anchor` plus
the lag. Read from the predecessor's side, the anchor boundary may not fall
after the successor's target boundary minus the lag.

    FS: successor.start >= predecessor.end   + lag   (lag at least 1 day)
    SS: successor.start >= predecessor.start + lag
    FF: successor.end   >= predecessor.end   + lag
    SF: successor.end   >= predecessor.start + lag

All four formulas live in RULES; adding a type is a new table entry.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import StrEnum

from phaseplan.phases.dates import add_days
from phaseplan.phases.invariants import MIN_FINISH_TO_START_GAP_DAYS
from phaseplan.phases.models import Dependency, DependencyType


class Boundary(StrEnum):
    START = "start"
    END = "end"


@dataclass(frozen=True)
class Bound:
    """A required date for one boundary of a phase."""

    boundary: Boundary
    day: date

    def pick(self, start: date, end: date) -> date:
        """Return the boundary of (start, end) this bound applies to."""
        return start if self.boundary == Boundary.START else end

    def allows_not_before(self, start: date, end: date) -> bool:
        """True if the bounded boundary is on or after the required day."""
        return self.pick(start, end) >= self.day

    def allows_not_after(self, start: date, end: date) -> bool:
        """True if the bounded boundary is on or before the required day."""
        return self.pick(start, end) <= self.day


@dataclass(frozen=True)
class DependencyRule:
    anchor: Boundary
    target: Boundary
    minimum_lag: int | None = None

    def effective_lag(self, lag_days: int) -> int:
        if self.minimum_lag is None:
            return lag_days
        return max(self.minimum_lag, lag_days)

    def successor_bound(self, predecessor_start: date, predecessor_end: date, lag_days: int) -> Bound:
        """Earliest legal day for the successor's target boundary."""
        anchor_day = predecessor_start if self.anchor == Boundary.START else predecessor_end
        return Bound(self.target, add_days(anchor_day, self.effective_lag(lag_days)))

    def predecessor_bound(self, successor_start: date, successor_end: date, lag_days: int) -> Bound:
        """Latest legal day for the predecessor's anchor boundary."""
        target_day = successor_start if self.target == Boundary.START else successor_end
        return Bound(self.anchor, add_days(target_day, -self.effective_lag(lag_days)))


RULES: dict[DependencyType, DependencyRule] = {
    DependencyType.FINISH_TO_START: DependencyRule(
        anchor=Boundary.END,
        target=Boundary.START,
        minimum_lag=MIN_FINISH_TO_START_GAP_DAYS,
    ),
    DependencyType.START_TO_START: DependencyRule(anchor=Boundary.START, target=Boundary.START),
    DependencyType.FINISH_TO_FINISH: DependencyRule(anchor=Boundary.END, target=Boundary.END),
    DependencyType.START_TO_FINISH: DependencyRule(anchor=Boundary.START, target=Boundary.END),
}


def rule_for(dependency: Dependency) -> DependencyRule:
    return RULES[dependency.type]
