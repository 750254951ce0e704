"""Phase persistence boundary.

Single entry point for reading and writing phases and dependencies.
Every write method commits its own transaction; bulk corrections are
all-or-nothing. This is the only place stored phase records are mutated.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from loguru import logger
from sqlalchemy import delete, or_, select
from sqlalchemy.orm import Session

from phaseplan.db.errors import (
    BulkCorrectionError,
    CircularDependencyError,
    DependencyNotFoundError,
    DuplicateDependencyError,
    InvalidDependencyError,
    InvalidPhaseRangeError,
    PhaseNotFoundError,
    ProjectNotFoundError,
)
from phaseplan.db.models import PhaseDependency, Project, ProjectPhase
from phaseplan.phases.dates import as_day, format_day
from phaseplan.phases.graph import PhaseGraph
from phaseplan.phases.invariants import DEFAULT_LAG_DAYS
from phaseplan.phases.models import Dependency, DependencyType, Phase, PhaseUpdate


class PhaseRepository:
    """SQLAlchemy-backed store for one database session."""

    def __init__(self, session: Session):
        self.session = session

    # ---- Projects ----

    def create_project(self, name: str) -> Project:
        project = Project(name=name)
        self.session.add(project)
        self.session.commit()
        logger.info(f"Created project {project.id} ({name})")
        return project

    def get_project(self, project_id: str) -> Project:
        project = self.session.get(Project, project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    # ---- Phases ----

    def list_phases(self, project_id: str) -> list[Phase]:
        """Return all phases of a project ordered by start date."""
        self.get_project(project_id)
        rows = self.session.scalars(
            select(ProjectPhase)
            .where(ProjectPhase.project_id == project_id)
            .order_by(ProjectPhase.start_date, ProjectPhase.id)
        ).all()
        return [row.to_phase() for row in rows]

    def get_phase(self, phase_id: str, project_id: str | None = None) -> Phase:
        return self._phase_row(phase_id, project_id).to_phase()

    def create_phase(self, project_id: str, name: str, start_date: date | str, end_date: date | str) -> Phase:
        """Create a phase.

        Raises:
            ProjectNotFoundError: If the project does not exist
            InvalidPhaseRangeError: If end_date is not after start_date
        """
        self.get_project(project_id)
        start, end = as_day(start_date), as_day(end_date)
        _check_range(start, end)

        row = ProjectPhase(project_id=project_id, name=name, start_date=start, end_date=end)
        self.session.add(row)
        self.session.commit()
        logger.info(f"Created phase {row.id} ({name}) {format_day(start)}..{format_day(end)}")
        return row.to_phase()

    def update_phase(
        self,
        phase_id: str,
        *,
        start_date: date | str | None = None,
        end_date: date | str | None = None,
        name: str | None = None,
        project_id: str | None = None,
    ) -> Phase:
        """Update any subset of a phase's dates and name.

        Raises:
            PhaseNotFoundError: If the phase does not exist
            InvalidPhaseRangeError: If the resulting range is not valid
        """
        row = self._phase_row(phase_id, project_id)
        start = as_day(start_date) if start_date is not None else row.start_date
        end = as_day(end_date) if end_date is not None else row.end_date
        _check_range(start, end)

        row.start_date = start
        row.end_date = end
        if name is not None:
            row.name = name
        self.session.commit()
        return row.to_phase()

    def delete_phase(self, phase_id: str, project_id: str | None = None) -> None:
        """Delete a phase and every dependency that references it."""
        row = self._phase_row(phase_id, project_id)
        removed = self.session.execute(
            delete(PhaseDependency).where(
                or_(
                    PhaseDependency.predecessor_phase_id == phase_id,
                    PhaseDependency.successor_phase_id == phase_id,
                )
            )
        ).rowcount
        self.session.delete(row)
        self.session.commit()
        logger.info(f"Deleted phase {phase_id} and {removed} dependencies")

    def apply_bulk_phase_corrections(self, project_id: str, updates: Sequence[PhaseUpdate]) -> list[Phase]:
        """Apply a correction diff in one transaction.

        Every update is validated before anything is written; if any update
        names an unknown phase, a phase of another project or an invalid
        range, nothing is written.

        Raises:
            ProjectNotFoundError: If the project does not exist
            BulkCorrectionError: If any update is rejected
        """
        self.get_project(project_id)
        if not updates:
            return []

        rows = {
            row.id: row
            for row in self.session.scalars(
                select(ProjectPhase).where(ProjectPhase.id.in_([update.id for update in updates]))
            ).all()
        }

        failures: dict[str, str] = {}
        for update in updates:
            row = rows.get(update.id)
            if row is None or row.project_id != project_id:
                failures[update.id] = "Project phase not found"
            elif update.new_end <= update.new_start:
                failures[update.id] = "Start date must be before end date"
        if failures:
            logger.warning(f"Bulk correction for project {project_id} rejected: {failures}")
            raise BulkCorrectionError(failures)

        try:
            for update in updates:
                row = rows[update.id]
                row.start_date = update.new_start
                row.end_date = update.new_end
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        logger.info(f"Applied {len(updates)} phase corrections to project {project_id}")
        return [rows[update.id].to_phase() for update in updates]

    # ---- Dependencies ----

    def list_dependencies(self, project_id: str) -> list[Dependency]:
        self.get_project(project_id)
        rows = self.session.scalars(
            select(PhaseDependency)
            .where(PhaseDependency.project_id == project_id)
            .order_by(PhaseDependency.created_at, PhaseDependency.id)
        ).all()
        return [row.to_dependency() for row in rows]

    def create_dependency(
        self,
        project_id: str,
        predecessor_phase_id: str,
        successor_phase_id: str,
        dependency_type: DependencyType = DependencyType.FINISH_TO_START,
        lag_days: int | None = None,
    ) -> Dependency:
        """Create a dependency after checking it keeps the project graph acyclic.

        Raises:
            ProjectNotFoundError: If the project does not exist
            InvalidDependencyError: Self-dependency or phase outside the project
            DuplicateDependencyError: Edge already exists
            CircularDependencyError: Edge would close a cycle
        """
        if predecessor_phase_id == successor_phase_id:
            raise InvalidDependencyError("A phase cannot depend on itself")

        phases = self.list_phases(project_id)
        phase_ids = {phase.id for phase in phases}
        for phase_id in (predecessor_phase_id, successor_phase_id):
            if phase_id not in phase_ids:
                raise InvalidDependencyError(f"Phase {phase_id} does not belong to project {project_id}")

        dependencies = self.list_dependencies(project_id)
        if any(
            dependency.predecessor_phase_id == predecessor_phase_id
            and dependency.successor_phase_id == successor_phase_id
            for dependency in dependencies
        ):
            raise DuplicateDependencyError(
                f"Dependency {predecessor_phase_id} -> {successor_phase_id} already exists"
            )

        if PhaseGraph(phases, dependencies).would_create_cycle(predecessor_phase_id, successor_phase_id):
            raise CircularDependencyError(
                f"Dependency {predecessor_phase_id} -> {successor_phase_id} would create a circular dependency"
            )

        row = PhaseDependency(
            project_id=project_id,
            predecessor_phase_id=predecessor_phase_id,
            successor_phase_id=successor_phase_id,
            dependency_type=DependencyType(dependency_type).value,
            lag_days=DEFAULT_LAG_DAYS if lag_days is None else lag_days,
        )
        self.session.add(row)
        self.session.commit()
        logger.info(
            f"Created {row.dependency_type} dependency {row.id}: "
            f"{predecessor_phase_id} -> {successor_phase_id} (lag {row.lag_days})"
        )
        return row.to_dependency()

    def delete_dependency(self, dependency_id: str, project_id: str | None = None) -> None:
        row = self.session.get(PhaseDependency, dependency_id)
        if row is None or (project_id is not None and row.project_id != project_id):
            raise DependencyNotFoundError(dependency_id)
        self.session.delete(row)
        self.session.commit()

    def _phase_row(self, phase_id: str, project_id: str | None = None) -> ProjectPhase:
        row = self.session.get(ProjectPhase, phase_id)
        if row is None or (project_id is not None and row.project_id != project_id):
            raise PhaseNotFoundError(phase_id)
        return row


def _check_range(start: date, end: date) -> None:
    if end <= start:
        raise InvalidPhaseRangeError(
            f"End date {format_day(end)} must be after start date {format_day(start)}"
        )
