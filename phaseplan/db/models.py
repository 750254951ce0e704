from __future__ import annotations

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from phaseplan.phases.models import Dependency, DependencyType, Phase


class Base(DeclarativeBase):
    """Base class for all database models."""


class Project(Base):
    """Project owning a set of phases and the dependencies between them."""

    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))


class ProjectPhase(Base):
    """One phase of a project timeline.

    Stores:
    - start_date / end_date: calendar days (DATE column, no time component)
    - updated_at: timestamp of the last edit or bulk correction
    """

    __tablename__ = "project_phases"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    project_id: Mapped[str] = mapped_column(String, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def to_phase(self) -> Phase:
        return Phase(id=self.id, name=self.name, start_date=self.start_date, end_date=self.end_date)


class PhaseDependency(Base):
    """Directed dependency predecessor -> successor between two phases of one project.

    Deleting either phase deletes the dependency.
    """

    __tablename__ = "phase_dependencies"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    project_id: Mapped[str] = mapped_column(String, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    predecessor_phase_id: Mapped[str] = mapped_column(
        String, ForeignKey("project_phases.id", ondelete="CASCADE"), nullable=False
    )
    successor_phase_id: Mapped[str] = mapped_column(
        String, ForeignKey("project_phases.id", ondelete="CASCADE"), nullable=False
    )
    dependency_type: Mapped[str] = mapped_column(String, nullable=False, default=DependencyType.FINISH_TO_START.value)
    lag_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("predecessor_phase_id", "successor_phase_id", name="uq_phase_dependencies_edge"),
        Index("idx_phase_dependencies_successor", "successor_phase_id"),
        Index("idx_phase_dependencies_predecessor", "predecessor_phase_id"),
    )

    def to_dependency(self) -> Dependency:
        return Dependency(
            id=self.id,
            predecessor_phase_id=self.predecessor_phase_id,
            successor_phase_id=self.successor_phase_id,
            type=DependencyType(self.dependency_type),
            lag_days=self.lag_days,
        )
