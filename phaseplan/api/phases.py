"""Project phase and dependency endpoints.

Writes go through PhaseRepository; validation, correction and cascade
computations are pure calls into phaseplan.phases on freshly loaded data.
"""

from __future__ import annotations

from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from loguru import logger
from sqlalchemy.orm import Session

from phaseplan.api.schemas import (
    BulkCorrectionRequest,
    BulkCorrectionResponse,
    CascadeApplyResponse,
    CascadeResponse,
    CorrectedDatesResponse,
    DependencyCreateRequest,
    DependencyResponse,
    FixAllResponse,
    PhaseCreateRequest,
    PhaseResponse,
    PhaseUpdateModel,
    PhaseUpdateRequest,
    ProjectCreateRequest,
    ProjectResponse,
    ProposedDatesRequest,
    ValidationResponse,
    ViolationMapResponse,
)
from phaseplan.config.settings import settings
from phaseplan.db.errors import (
    BulkCorrectionError,
    CircularDependencyError,
    DependencyNotFoundError,
    DuplicateDependencyError,
    InvalidDependencyError,
    InvalidPhaseRangeError,
    PersistenceError,
    PhaseNotFoundError,
    ProjectNotFoundError,
)
from phaseplan.db.repository import PhaseRepository
from phaseplan.db.session import get_db
from phaseplan.phases.correct import correct
from phaseplan.phases.errors import CyclicDependencyError
from phaseplan.phases.evaluate import build_violation_map, evaluate
from phaseplan.phases.models import Dependency, Phase
from phaseplan.phases.schedule import cascade_updates, preview_cascade, schedule_fix

router = APIRouter(prefix="/projects", tags=["phases"])

_STATUS_BY_ERROR: dict[type[PersistenceError], int] = {
    ProjectNotFoundError: status.HTTP_404_NOT_FOUND,
    PhaseNotFoundError: status.HTTP_404_NOT_FOUND,
    DependencyNotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidPhaseRangeError: status.HTTP_400_BAD_REQUEST,
    InvalidDependencyError: status.HTTP_400_BAD_REQUEST,
    BulkCorrectionError: status.HTTP_400_BAD_REQUEST,
    DuplicateDependencyError: status.HTTP_409_CONFLICT,
    CircularDependencyError: status.HTTP_409_CONFLICT,
}


def _raise_http(err: PersistenceError) -> NoReturn:
    """Translate a persistence error into the matching HTTP response."""
    status_code = _STATUS_BY_ERROR.get(type(err), status.HTTP_400_BAD_REQUEST)
    if isinstance(err, BulkCorrectionError):
        raise HTTPException(status_code=status_code, detail={"message": str(err), "failures": err.failures}) from err
    raise HTTPException(status_code=status_code, detail=str(err)) from err


def _raise_cycle(err: CyclicDependencyError) -> NoReturn:
    raise HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={"message": "Project contains circular dependencies", "cycles": err.details},
    ) from err


def _load_project(repo: PhaseRepository, project_id: str) -> tuple[list[Phase], list[Dependency]]:
    """Load the full phase set and dependency set of a project."""
    try:
        phases = repo.list_phases(project_id)
        dependencies = repo.list_dependencies(project_id)
    except PersistenceError as e:
        _raise_http(e)

    if len(phases) > settings.max_project_phases:
        logger.warning(f"Project {project_id} has {len(phases)} phases (limit {settings.max_project_phases})")
        raise HTTPException(
            status_code=413,
            detail=f"Project has more than {settings.max_project_phases} phases",
        )
    return phases, dependencies


def _find_phase(phases: list[Phase], phase_id: str) -> Phase:
    for phase in phases:
        if phase.id == phase_id:
            return phase
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Project phase {phase_id} not found")


# ---- Projects ----


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
def create_project(request: ProjectCreateRequest, db: Session = Depends(get_db)) -> ProjectResponse:
    project = PhaseRepository(db).create_project(request.name)
    return ProjectResponse(id=project.id, name=project.name)


# ---- Phases ----


@router.get("/{project_id}/phases", response_model=list[PhaseResponse])
def list_phases(project_id: str, db: Session = Depends(get_db)) -> list[PhaseResponse]:
    try:
        phases = PhaseRepository(db).list_phases(project_id)
    except PersistenceError as e:
        _raise_http(e)
    return [PhaseResponse.from_phase(phase) for phase in phases]


@router.post("/{project_id}/phases", response_model=PhaseResponse, status_code=status.HTTP_201_CREATED)
def create_phase(project_id: str, request: PhaseCreateRequest, db: Session = Depends(get_db)) -> PhaseResponse:
    try:
        phase = PhaseRepository(db).create_phase(project_id, request.name, request.start_date, request.end_date)
    except PersistenceError as e:
        _raise_http(e)
    return PhaseResponse.from_phase(phase)


@router.patch("/{project_id}/phases/{phase_id}", response_model=PhaseResponse)
def update_phase(
    project_id: str,
    phase_id: str,
    request: PhaseUpdateRequest,
    db: Session = Depends(get_db),
) -> PhaseResponse:
    """Write new dates and/or name as given.

    Dependencies are not enforced here; callers validate first and the
    violation map reports anything left inconsistent.
    """
    try:
        phase = PhaseRepository(db).update_phase(
            phase_id,
            start_date=request.start_date,
            end_date=request.end_date,
            name=request.name,
            project_id=project_id,
        )
    except PersistenceError as e:
        _raise_http(e)
    return PhaseResponse.from_phase(phase)


@router.delete("/{project_id}/phases/{phase_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_phase(project_id: str, phase_id: str, db: Session = Depends(get_db)) -> Response:
    try:
        PhaseRepository(db).delete_phase(phase_id, project_id=project_id)
    except PersistenceError as e:
        _raise_http(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---- Dependencies ----


@router.get("/{project_id}/dependencies", response_model=list[DependencyResponse])
def list_dependencies(project_id: str, db: Session = Depends(get_db)) -> list[DependencyResponse]:
    try:
        dependencies = PhaseRepository(db).list_dependencies(project_id)
    except PersistenceError as e:
        _raise_http(e)
    return [DependencyResponse.from_dependency(dependency) for dependency in dependencies]


@router.post("/{project_id}/dependencies", response_model=DependencyResponse, status_code=status.HTTP_201_CREATED)
def create_dependency(
    project_id: str,
    request: DependencyCreateRequest,
    db: Session = Depends(get_db),
) -> DependencyResponse:
    try:
        dependency = PhaseRepository(db).create_dependency(
            project_id,
            request.predecessor_phase_id,
            request.successor_phase_id,
            dependency_type=request.dependency_type,
            lag_days=request.lag_days,
        )
    except PersistenceError as e:
        _raise_http(e)
    return DependencyResponse.from_dependency(dependency)


@router.delete("/{project_id}/dependencies/{dependency_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_dependency(project_id: str, dependency_id: str, db: Session = Depends(get_db)) -> Response:
    try:
        PhaseRepository(db).delete_dependency(dependency_id, project_id=project_id)
    except PersistenceError as e:
        _raise_http(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---- Constraint engine ----


@router.get("/{project_id}/violations", response_model=ViolationMapResponse)
def get_violations(project_id: str, db: Session = Depends(get_db)) -> ViolationMapResponse:
    phases, dependencies = _load_project(PhaseRepository(db), project_id)
    return ViolationMapResponse(violations=build_violation_map(phases, dependencies))


@router.post("/{project_id}/phases/{phase_id}/validate", response_model=ValidationResponse)
def validate_phase_dates(
    project_id: str,
    phase_id: str,
    request: ProposedDatesRequest,
    db: Session = Depends(get_db),
) -> ValidationResponse:
    """Check proposed dates for one phase and suggest the nearest legal dates."""
    phases, dependencies = _load_project(PhaseRepository(db), project_id)
    phase = _find_phase(phases, phase_id)

    violations = evaluate(phase, request.start_date, request.end_date, phases, dependencies)
    suggested = correct(phase, request.start_date, request.end_date, phases, dependencies)
    return ValidationResponse(
        phase_id=phase_id,
        violations=violations,
        suggested=CorrectedDatesResponse.from_corrected(suggested),
    )


@router.post("/{project_id}/phases/{phase_id}/cascade-preview", response_model=CascadeResponse)
def cascade_preview(
    project_id: str,
    phase_id: str,
    request: ProposedDatesRequest,
    db: Session = Depends(get_db),
) -> CascadeResponse:
    """Preview which phases a date change would push later. Nothing is written."""
    phases, dependencies = _load_project(PhaseRepository(db), project_id)
    _find_phase(phases, phase_id)
    result = preview_cascade(phase_id, request.start_date, request.end_date, phases, dependencies)
    return CascadeResponse.from_result(result)


@router.post("/{project_id}/phases/{phase_id}/cascade-apply", response_model=CascadeApplyResponse)
def cascade_apply(
    project_id: str,
    phase_id: str,
    request: ProposedDatesRequest,
    db: Session = Depends(get_db),
) -> CascadeApplyResponse:
    """Move one phase and write every phase its cascade pushes, in one transaction."""
    repo = PhaseRepository(db)
    phases, dependencies = _load_project(repo, project_id)
    _find_phase(phases, phase_id)
    result = preview_cascade(phase_id, request.start_date, request.end_date, phases, dependencies)

    if result.is_blocked:
        logger.warning(
            f"Cascade for phase {phase_id} refused: {len(result.circular_dependencies)} cycles, "
            f"{len(result.validation_errors)} validation errors"
        )
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT if result.circular_dependencies else status.HTTP_400_BAD_REQUEST,
            detail={
                "message": "Cascade cannot be applied",
                "circular_dependencies": result.circular_dependencies,
                "validation_errors": result.validation_errors,
            },
        )

    try:
        updated = repo.apply_bulk_phase_corrections(
            project_id, cascade_updates(phase_id, request.start_date, request.end_date, result)
        )
    except PersistenceError as e:
        _raise_http(e)

    return CascadeApplyResponse(
        cascade=CascadeResponse.from_result(result),
        updated=[PhaseResponse.from_phase(phase) for phase in updated],
    )


@router.post("/{project_id}/fix-all", response_model=FixAllResponse)
def fix_all(
    project_id: str,
    apply: bool = Query(False, description="Persist the computed updates"),
    db: Session = Depends(get_db),
) -> FixAllResponse:
    """Compute (and optionally apply) the correction diff for every violation."""
    repo = PhaseRepository(db)
    phases, dependencies = _load_project(repo, project_id)
    violation_map = build_violation_map(phases, dependencies)

    try:
        updates = schedule_fix(phases, dependencies, violation_map)
    except CyclicDependencyError as e:
        _raise_cycle(e)

    response_updates = [PhaseUpdateModel.from_update(update) for update in updates]
    if not apply:
        return FixAllResponse(updates=response_updates, applied=False)

    try:
        repo.apply_bulk_phase_corrections(project_id, updates)
    except PersistenceError as e:
        _raise_http(e)

    phases, dependencies = _load_project(repo, project_id)
    return FixAllResponse(
        updates=response_updates,
        applied=True,
        remaining_violations=build_violation_map(phases, dependencies),
    )


@router.post("/{project_id}/bulk-corrections", response_model=BulkCorrectionResponse)
def bulk_corrections(
    project_id: str,
    request: BulkCorrectionRequest,
    db: Session = Depends(get_db),
) -> BulkCorrectionResponse:
    """Apply a client-supplied correction diff all-or-nothing."""
    try:
        updated = PhaseRepository(db).apply_bulk_phase_corrections(
            project_id, [update.to_update() for update in request.updates]
        )
    except PersistenceError as e:
        _raise_http(e)
    return BulkCorrectionResponse(updated=[PhaseResponse.from_phase(phase) for phase in updated])
