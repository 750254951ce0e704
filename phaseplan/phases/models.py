"""Phase and dependency value types.

Phases and dependencies are immutable pydantic models; every date field is
normalized to a calendar day on construction (see phaseplan.phases.dates).
Engine results (corrections, updates, cascade previews) are frozen
dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from phaseplan.phases.dates import as_day, days_between
from phaseplan.phases.invariants import DEFAULT_LAG_DAYS


class DependencyType(StrEnum):
    FINISH_TO_START = "FS"
    START_TO_START = "SS"
    FINISH_TO_FINISH = "FF"
    START_TO_FINISH = "SF"

    @property
    def label(self) -> str:
        return _TYPE_LABELS[self]


_TYPE_LABELS: dict[DependencyType, str] = {
    DependencyType.FINISH_TO_START: "finish-to-start",
    DependencyType.START_TO_START: "start-to-start",
    DependencyType.FINISH_TO_FINISH: "finish-to-finish",
    DependencyType.START_TO_FINISH: "start-to-finish",
}


class ViolationKind(StrEnum):
    INVALID_RANGE = "invalid_range"
    PREDECESSOR = "predecessor"
    SUCCESSOR = "successor"


class Phase(BaseModel):
    """One stage of a project, an inclusive calendar-day interval."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Phase identifier")
    start_date: date = Field(description="First day of the phase")
    end_date: date = Field(description="Last day of the phase")
    name: str | None = Field(default=None, description="Display name used in violation messages")

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def normalize_day(cls, value: date | str) -> date:
        """Drop time-of-day and time zone so only the calendar day remains."""
        return as_day(value)

    @property
    def label(self) -> str:
        return self.name or self.id

    @property
    def duration_days(self) -> int:
        """Whole days from start to end (not clamped)."""
        return days_between(self.start_date, self.end_date)

    @property
    def is_valid_range(self) -> bool:
        return self.end_date > self.start_date


class Dependency(BaseModel):
    """Directed, typed edge predecessor -> successor with a signed lag."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Dependency identifier")
    predecessor_phase_id: str = Field(description="Phase the constraint reads from")
    successor_phase_id: str = Field(description="Phase the constraint applies to")
    type: DependencyType = Field(default=DependencyType.FINISH_TO_START, description="Relation between the two phases")
    lag_days: int = Field(default=DEFAULT_LAG_DAYS, description="Signed day offset applied to the bound")

    @field_validator("lag_days", mode="before")
    @classmethod
    def default_lag(cls, value: int | None) -> int:
        """Treat a missing lag as zero."""
        if value is None:
            return DEFAULT_LAG_DAYS
        return value


class Violation(BaseModel):
    """A breach of one bound for a phase's (proposed) dates."""

    model_config = ConfigDict(frozen=True)

    phase_id: str
    message: str
    dependency_id: str | None = Field(default=None, description="Offending dependency, None for an invalid range")
    kind: ViolationKind = ViolationKind.PREDECESSOR
    required_date: date | None = Field(
        default=None,
        description="Earliest (predecessor side) or latest (successor side) legal date",
    )


@dataclass(frozen=True)
class CorrectedDates:
    """Result of correcting one phase against its incoming dependencies.

    Attributes:
        start: Corrected start day
        end: Corrected end day
        changed: Whether the corrected dates differ from the proposed ones
    """

    start: date
    end: date
    changed: bool


@dataclass(frozen=True)
class PhaseUpdate:
    """A single entry of a bulk correction diff."""

    id: str
    new_start: date
    new_end: date


@dataclass(frozen=True)
class CascadeChange:
    """A phase moved by the cascade of a single-phase change.

    Attributes:
        phase_id: Moved phase
        phase_name: Display name of the moved phase
        current_start: Persisted start day
        current_end: Persisted end day
        new_start: Start day after the cascade
        new_end: End day after the cascade
        dependency_type: Type of the dependency that moved the phase last
        lag_days: Lag of that dependency
        affects_count: Number of outgoing dependencies of the moved phase
    """

    phase_id: str
    phase_name: str
    current_start: date
    current_end: date
    new_start: date
    new_end: date
    dependency_type: DependencyType
    lag_days: int
    affects_count: int


@dataclass(frozen=True)
class CascadeResult:
    """What-if result for moving one phase to new dates."""

    affected_phases: list[CascadeChange] = field(default_factory=list)
    circular_dependencies: list[str] = field(default_factory=list)
    validation_errors: list[str] = field(default_factory=list)

    @property
    def cascade_count(self) -> int:
        return len(self.affected_phases)

    @property
    def is_blocked(self) -> bool:
        """True when cycles or validation errors prevent the cascade."""
        return bool(self.circular_dependencies or self.validation_errors)
