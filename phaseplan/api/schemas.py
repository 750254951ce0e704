"""Request and response models for the phase API.

Dates are exchanged as YYYY-MM-DD strings; timestamps are accepted on input
and reduced to their calendar day.
"""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field, field_validator

from phaseplan.phases.dates import as_day
from phaseplan.phases.models import (
    CascadeChange,
    CascadeResult,
    CorrectedDates,
    Dependency,
    DependencyType,
    Phase,
    PhaseUpdate,
    Violation,
)


class _DayFields(BaseModel):
    @field_validator("start_date", "end_date", "new_start", "new_end", mode="before", check_fields=False)
    @classmethod
    def normalize_day(cls, value: date | str | None) -> date | None:
        if value is None:
            return None
        try:
            return as_day(value)
        except TypeError as e:
            raise ValueError(str(e)) from e


class ProjectCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, description="Project name")


class ProjectResponse(BaseModel):
    id: str
    name: str


class PhaseCreateRequest(_DayFields):
    name: str = Field(..., min_length=1, description="Phase name")
    start_date: date = Field(description="First day (YYYY-MM-DD)")
    end_date: date = Field(description="Last day (YYYY-MM-DD)")


class PhaseUpdateRequest(_DayFields):
    name: str | None = Field(default=None, description="New phase name")
    start_date: date | None = Field(default=None, description="New first day")
    end_date: date | None = Field(default=None, description="New last day")


class PhaseResponse(BaseModel):
    id: str
    name: str | None
    start_date: date
    end_date: date

    @classmethod
    def from_phase(cls, phase: Phase) -> PhaseResponse:
        return cls(id=phase.id, name=phase.name, start_date=phase.start_date, end_date=phase.end_date)


class DependencyCreateRequest(BaseModel):
    predecessor_phase_id: str
    successor_phase_id: str
    dependency_type: DependencyType = Field(default=DependencyType.FINISH_TO_START, description="FS, SS, FF or SF")
    lag_days: int | None = Field(default=None, description="Signed lag in days (default 0)")


class DependencyResponse(BaseModel):
    id: str
    predecessor_phase_id: str
    successor_phase_id: str
    dependency_type: DependencyType
    lag_days: int

    @classmethod
    def from_dependency(cls, dependency: Dependency) -> DependencyResponse:
        return cls(
            id=dependency.id,
            predecessor_phase_id=dependency.predecessor_phase_id,
            successor_phase_id=dependency.successor_phase_id,
            dependency_type=dependency.type,
            lag_days=dependency.lag_days,
        )


class ProposedDatesRequest(_DayFields):
    start_date: date = Field(description="Proposed first day")
    end_date: date = Field(description="Proposed last day")


class CorrectedDatesResponse(BaseModel):
    start_date: date
    end_date: date
    changed: bool

    @classmethod
    def from_corrected(cls, corrected: CorrectedDates) -> CorrectedDatesResponse:
        return cls(start_date=corrected.start, end_date=corrected.end, changed=corrected.changed)


class ValidationResponse(BaseModel):
    phase_id: str
    violations: list[Violation]
    suggested: CorrectedDatesResponse


class ViolationMapResponse(BaseModel):
    violations: dict[str, list[Violation]] = Field(description="Phase id -> violations, only phases with violations")


class PhaseUpdateModel(_DayFields):
    id: str
    new_start: date
    new_end: date

    @classmethod
    def from_update(cls, update: PhaseUpdate) -> PhaseUpdateModel:
        return cls(id=update.id, new_start=update.new_start, new_end=update.new_end)

    def to_update(self) -> PhaseUpdate:
        return PhaseUpdate(id=self.id, new_start=self.new_start, new_end=self.new_end)


class BulkCorrectionRequest(BaseModel):
    updates: list[PhaseUpdateModel]


class BulkCorrectionResponse(BaseModel):
    updated: list[PhaseResponse]


class FixAllResponse(BaseModel):
    updates: list[PhaseUpdateModel]
    applied: bool
    remaining_violations: dict[str, list[Violation]] | None = Field(
        default=None,
        description="Violation map recomputed from fresh data after applying",
    )


class CascadeChangeModel(BaseModel):
    phase_id: str
    phase_name: str
    current_start_date: date
    current_end_date: date
    new_start_date: date
    new_end_date: date
    dependency_type: DependencyType
    lag_days: int
    affects_count: int

    @classmethod
    def from_change(cls, change: CascadeChange) -> CascadeChangeModel:
        return cls(
            phase_id=change.phase_id,
            phase_name=change.phase_name,
            current_start_date=change.current_start,
            current_end_date=change.current_end,
            new_start_date=change.new_start,
            new_end_date=change.new_end,
            dependency_type=change.dependency_type,
            lag_days=change.lag_days,
            affects_count=change.affects_count,
        )


class CascadeResponse(BaseModel):
    affected_phases: list[CascadeChangeModel]
    cascade_count: int
    circular_dependencies: list[str]
    validation_errors: list[str]

    @classmethod
    def from_result(cls, result: CascadeResult) -> CascadeResponse:
        return cls(
            affected_phases=[CascadeChangeModel.from_change(change) for change in result.affected_phases],
            cascade_count=result.cascade_count,
            circular_dependencies=result.circular_dependencies,
            validation_errors=result.validation_errors,
        )


class CascadeApplyResponse(BaseModel):
    cascade: CascadeResponse
    updated: list[PhaseResponse] = Field(description="Moved phase first, then every pushed phase")
