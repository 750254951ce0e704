"""Tests for the phase persistence boundary."""

from datetime import date

import pytest

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
from phaseplan.db.models import ProjectPhase
from phaseplan.db.repository import PhaseRepository
from phaseplan.phases.evaluate import build_violation_map
from phaseplan.phases.models import DependencyType, PhaseUpdate
from phaseplan.phases.schedule import schedule_fix


@pytest.fixture
def repo(db_session):
    return PhaseRepository(db_session)


@pytest.fixture
def project_id(repo):
    return repo.create_project("Launch").id


def test_project_lookup(repo, project_id):
    assert repo.get_project(project_id).name == "Launch"
    with pytest.raises(ProjectNotFoundError):
        repo.get_project("missing")


def test_create_and_list_phases_ordered_by_start(repo, project_id):
    repo.create_phase(project_id, "Build", "2025-01-11", "2025-01-14")
    repo.create_phase(project_id, "Design", date(2025, 1, 1), "2025-01-10T18:00:00Z")

    phases = repo.list_phases(project_id)

    assert [phase.name for phase in phases] == ["Design", "Build"]
    assert phases[0].end_date == date(2025, 1, 10)


def test_create_phase_rejects_invalid_range(repo, project_id):
    with pytest.raises(InvalidPhaseRangeError):
        repo.create_phase(project_id, "Empty", "2025-01-05", "2025-01-05")


def test_create_phase_requires_project(repo):
    with pytest.raises(ProjectNotFoundError):
        repo.create_phase("missing", "Design", "2025-01-01", "2025-01-10")


def test_update_phase_changes_only_given_fields(repo, project_id):
    phase = repo.create_phase(project_id, "Design", "2025-01-01", "2025-01-10")

    updated = repo.update_phase(phase.id, end_date="2025-01-12")

    assert updated.start_date == date(2025, 1, 1)
    assert updated.end_date == date(2025, 1, 12)
    assert updated.name == "Design"

    renamed = repo.update_phase(phase.id, name="Discovery")
    assert renamed.name == "Discovery"


def test_update_phase_rejects_invalid_range(repo, project_id):
    phase = repo.create_phase(project_id, "Design", "2025-01-01", "2025-01-10")
    with pytest.raises(InvalidPhaseRangeError):
        repo.update_phase(phase.id, start_date="2025-01-10")


def test_phase_lookup_is_scoped_to_project(repo, project_id):
    other_project = repo.create_project("Other").id
    phase = repo.create_phase(project_id, "Design", "2025-01-01", "2025-01-10")

    assert repo.get_phase(phase.id, project_id=project_id).id == phase.id
    with pytest.raises(PhaseNotFoundError):
        repo.get_phase(phase.id, project_id=other_project)
    with pytest.raises(PhaseNotFoundError):
        repo.update_phase(phase.id, name="x", project_id=other_project)


def test_create_dependency_defaults(repo, project_id):
    design = repo.create_phase(project_id, "Design", "2025-01-01", "2025-01-10")
    build = repo.create_phase(project_id, "Build", "2025-01-11", "2025-01-14")

    dependency = repo.create_dependency(project_id, design.id, build.id)

    assert dependency.type == DependencyType.FINISH_TO_START
    assert dependency.lag_days == 0
    assert repo.list_dependencies(project_id) == [dependency]


def test_create_dependency_stores_type_and_lag(repo, project_id):
    design = repo.create_phase(project_id, "Design", "2025-01-01", "2025-01-10")
    review = repo.create_phase(project_id, "Review", "2025-01-03", "2025-01-12")

    dependency = repo.create_dependency(project_id, design.id, review.id, DependencyType.START_TO_START, lag_days=-2)

    assert dependency.type == DependencyType.START_TO_START
    assert dependency.lag_days == -2


def test_self_dependency_rejected(repo, project_id):
    design = repo.create_phase(project_id, "Design", "2025-01-01", "2025-01-10")
    with pytest.raises(InvalidDependencyError):
        repo.create_dependency(project_id, design.id, design.id)


def test_dependency_across_projects_rejected(repo, project_id):
    other_project = repo.create_project("Other").id
    design = repo.create_phase(project_id, "Design", "2025-01-01", "2025-01-10")
    foreign = repo.create_phase(other_project, "Foreign", "2025-01-11", "2025-01-14")

    with pytest.raises(InvalidDependencyError):
        repo.create_dependency(project_id, design.id, foreign.id)


def test_duplicate_dependency_rejected(repo, project_id):
    design = repo.create_phase(project_id, "Design", "2025-01-01", "2025-01-10")
    build = repo.create_phase(project_id, "Build", "2025-01-11", "2025-01-14")
    repo.create_dependency(project_id, design.id, build.id)

    with pytest.raises(DuplicateDependencyError):
        repo.create_dependency(project_id, design.id, build.id, DependencyType.START_TO_START)


def test_dependency_closing_a_cycle_rejected(repo, project_id):
    a = repo.create_phase(project_id, "A", "2025-01-01", "2025-01-05")
    b = repo.create_phase(project_id, "B", "2025-01-06", "2025-01-10")
    c = repo.create_phase(project_id, "C", "2025-01-11", "2025-01-15")
    repo.create_dependency(project_id, a.id, b.id)
    repo.create_dependency(project_id, b.id, c.id)

    with pytest.raises(CircularDependencyError):
        repo.create_dependency(project_id, c.id, a.id)
    assert len(repo.list_dependencies(project_id)) == 2


def test_delete_phase_removes_its_dependencies(repo, project_id):
    design = repo.create_phase(project_id, "Design", "2025-01-01", "2025-01-10")
    build = repo.create_phase(project_id, "Build", "2025-01-11", "2025-01-14")
    repo.create_dependency(project_id, design.id, build.id)

    repo.delete_phase(design.id)

    assert [phase.id for phase in repo.list_phases(project_id)] == [build.id]
    assert repo.list_dependencies(project_id) == []


def test_delete_dependency(repo, project_id):
    design = repo.create_phase(project_id, "Design", "2025-01-01", "2025-01-10")
    build = repo.create_phase(project_id, "Build", "2025-01-11", "2025-01-14")
    dependency = repo.create_dependency(project_id, design.id, build.id)

    repo.delete_dependency(dependency.id, project_id=project_id)

    assert repo.list_dependencies(project_id) == []
    with pytest.raises(DependencyNotFoundError):
        repo.delete_dependency(dependency.id)


def test_bulk_corrections_apply_all(repo, project_id):
    design = repo.create_phase(project_id, "Design", "2025-01-01", "2025-01-10")
    build = repo.create_phase(project_id, "Build", "2025-01-05", "2025-01-08")

    updated = repo.apply_bulk_phase_corrections(
        project_id,
        [
            PhaseUpdate(id=build.id, new_start=date(2025, 1, 11), new_end=date(2025, 1, 14)),
            PhaseUpdate(id=design.id, new_start=date(2025, 1, 1), new_end=date(2025, 1, 9)),
        ],
    )

    assert [(phase.id, phase.start_date) for phase in updated] == [
        (build.id, date(2025, 1, 11)),
        (design.id, date(2025, 1, 1)),
    ]
    assert repo.get_phase(build.id).end_date == date(2025, 1, 14)


def test_bulk_corrections_are_all_or_nothing(repo, project_id, db_session):
    design = repo.create_phase(project_id, "Design", "2025-01-01", "2025-01-10")
    build = repo.create_phase(project_id, "Build", "2025-01-05", "2025-01-08")

    with pytest.raises(BulkCorrectionError) as exc_info:
        repo.apply_bulk_phase_corrections(
            project_id,
            [
                PhaseUpdate(id=build.id, new_start=date(2025, 1, 11), new_end=date(2025, 1, 14)),
                PhaseUpdate(id=design.id, new_start=date(2025, 1, 5), new_end=date(2025, 1, 5)),
                PhaseUpdate(id="missing", new_start=date(2025, 1, 1), new_end=date(2025, 1, 2)),
            ],
        )

    assert exc_info.value.failures == {
        design.id: "Start date must be before end date",
        "missing": "Project phase not found",
    }
    db_session.expire_all()
    stored = db_session.get(ProjectPhase, build.id)
    assert (stored.start_date, stored.end_date) == (date(2025, 1, 5), date(2025, 1, 8))


def test_bulk_corrections_reject_phase_of_other_project(repo, project_id):
    other_project = repo.create_project("Other").id
    foreign = repo.create_phase(other_project, "Foreign", "2025-01-01", "2025-01-10")

    with pytest.raises(BulkCorrectionError) as exc_info:
        repo.apply_bulk_phase_corrections(
            project_id,
            [PhaseUpdate(id=foreign.id, new_start=date(2025, 2, 1), new_end=date(2025, 2, 3))],
        )

    assert exc_info.value.failures == {foreign.id: "Project phase not found"}


def test_fix_round_trip_through_the_database(repo, project_id):
    design = repo.create_phase(project_id, "Design", "2025-01-01", "2025-01-10")
    build = repo.create_phase(project_id, "Build", "2025-01-05", "2025-01-08")
    release = repo.create_phase(project_id, "Release", "2025-01-09", "2025-01-12")
    repo.create_dependency(project_id, design.id, build.id)
    repo.create_dependency(project_id, build.id, release.id)

    phases, dependencies = repo.list_phases(project_id), repo.list_dependencies(project_id)
    updates = schedule_fix(phases, dependencies, build_violation_map(phases, dependencies))
    repo.apply_bulk_phase_corrections(project_id, updates)

    assert build_violation_map(repo.list_phases(project_id), repo.list_dependencies(project_id)) == {}
    assert repo.get_phase(release.id).start_date == date(2025, 1, 15)
