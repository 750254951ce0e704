"""Tests for single-phase date correction."""

from datetime import date

from phaseplan.phases.correct import correct, shift_later
from phaseplan.phases.models import DependencyType


def test_overlapping_successor_moves_after_predecessor(make_phase, make_dependency):
    design = make_phase("A", "2025-01-01", "2025-01-10")
    build = make_phase("B", "2025-01-05", "2025-01-08")

    corrected = correct(build, "2025-01-05", "2025-01-08", [design, build], [make_dependency("A", "B")])

    assert (corrected.start, corrected.end) == (date(2025, 1, 11), date(2025, 1, 14))
    assert corrected.changed is True


def test_legal_dates_are_unchanged(make_phase, make_dependency):
    design = make_phase("A", "2025-01-01", "2025-01-10")
    build = make_phase("B", "2025-01-12", "2025-01-20")

    corrected = correct(build, "2025-01-12", "2025-01-20", [design, build], [make_dependency("A", "B")])

    assert (corrected.start, corrected.end) == (date(2025, 1, 12), date(2025, 1, 20))
    assert corrected.changed is False


def test_finish_bound_shifts_start_to_keep_duration(make_phase, make_dependency):
    design = make_phase("A", "2025-01-01", "2025-01-10")
    review = make_phase("B", "2025-01-02", "2025-01-05")
    dependencies = [make_dependency("A", "B", DependencyType.FINISH_TO_FINISH, lag_days=2)]

    corrected = correct(review, review.start_date, review.end_date, [design, review], dependencies)

    assert (corrected.start, corrected.end) == (date(2025, 1, 9), date(2025, 1, 12))


def test_start_and_finish_bounds_combine(make_phase, make_dependency):
    design = make_phase("A", "2025-01-01", "2025-01-10")
    review = make_phase("B", "2024-12-30", "2025-01-02")
    dependencies = [
        make_dependency("A", "B", DependencyType.START_TO_START),
        make_dependency("A", "B", DependencyType.FINISH_TO_FINISH, dependency_id="ff"),
    ]

    corrected = correct(review, review.start_date, review.end_date, [design, review], dependencies)

    assert (corrected.start, corrected.end) == (date(2025, 1, 7), date(2025, 1, 10))


def test_latest_predecessor_wins(make_phase, make_dependency):
    design = make_phase("A", "2025-01-01", "2025-01-10")
    procurement = make_phase("B", "2025-01-01", "2025-01-15")
    build = make_phase("C", "2025-01-05", "2025-01-08")
    dependencies = [make_dependency("A", "C"), make_dependency("B", "C", lag_days=2)]

    corrected = correct(build, build.start_date, build.end_date, [design, procurement, build], dependencies)

    assert (corrected.start, corrected.end) == (date(2025, 1, 17), date(2025, 1, 20))


def test_zero_length_proposal_gets_one_day(make_phase, make_dependency):
    design = make_phase("A", "2025-01-01", "2025-01-10")
    build = make_phase("B", "2025-01-05", "2025-01-08")

    corrected = correct(build, "2025-01-05", "2025-01-05", [design, build], [make_dependency("A", "B")])

    assert (corrected.start, corrected.end) == (date(2025, 1, 11), date(2025, 1, 12))


def test_phase_without_predecessors_is_never_moved(make_phase):
    solo = make_phase("A", "2025-01-01", "2025-01-10")
    corrected = correct(solo, "2025-02-01", "2025-02-03", [solo], [])
    assert (corrected.start, corrected.end, corrected.changed) == (date(2025, 2, 1), date(2025, 2, 3), False)


def test_shift_later_never_moves_earlier():
    start, end = date(2025, 1, 10), date(2025, 1, 12)
    assert shift_later(start, end, 2, date(2025, 1, 1), None) == (start, end)
    assert shift_later(start, end, 2, None, date(2025, 1, 20)) == (date(2025, 1, 18), date(2025, 1, 20))


def test_result_does_not_depend_on_dependency_order(make_phase, make_dependency):
    design = make_phase("A", "2025-01-01", "2025-01-10")
    procurement = make_phase("B", "2025-01-01", "2025-01-15")
    build = make_phase("C", "2025-01-05", "2025-01-08")
    dependencies = [
        make_dependency("A", "C", DependencyType.FINISH_TO_FINISH, lag_days=12),
        make_dependency("B", "C"),
    ]
    phases = [design, procurement, build]

    forward = correct(build, build.start_date, build.end_date, phases, dependencies)
    backward = correct(build, build.start_date, build.end_date, phases, list(reversed(dependencies)))

    assert forward == backward
    assert (forward.start, forward.end) == (date(2025, 1, 19), date(2025, 1, 22))


def test_correcting_a_correction_changes_nothing(make_phase, make_dependency):
    design = make_phase("A", "2025-01-01", "2025-01-10")
    review = make_phase("B", "2025-01-02", "2025-01-05")
    build = make_phase("C", "2025-01-03", "2025-01-04")
    phases = [design, review, build]
    dependencies = [
        make_dependency("A", "C"),
        make_dependency("B", "C", DependencyType.FINISH_TO_FINISH, lag_days=12),
    ]

    first = correct(build, build.start_date, build.end_date, phases, dependencies)
    second = correct(build, first.start, first.end, phases, dependencies)

    assert first.changed is True
    assert second.changed is False
    assert (second.start, second.end) == (first.start, first.end)
