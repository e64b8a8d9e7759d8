"""Tests for the per-day overallocation check."""

from __future__ import annotations

from datetime import date

import pytest

from backend.domain.allocation_validator import (
    AllocationCandidate,
    InvalidAllocation,
    Overallocation,
    ValidAllocation,
    daily_allocation_totals,
    iter_days,
    validate_allocation,
)
from backend.domain.models import Assignment


def _assignment(
    assignment_id: str,
    start: date,
    end: date,
    allocation: float,
    person_id: str = "p1",
) -> Assignment:
    return Assignment(
        assignment_id=assignment_id,
        person_id=person_id,
        project_id="proj",
        start_date=start,
        end_date=end,
        allocation=allocation,
    )


def _candidate(start, end, allocation, assignment_id=None, person_id="p1") -> AllocationCandidate:
    return AllocationCandidate(
        person_id=person_id,
        start_date=start,
        end_date=end,
        allocation=allocation,
        assignment_id=assignment_id,
    )


HALF_TIME_JANUARY = [_assignment("a1", date(2024, 1, 1), date(2024, 1, 10), 0.5)]


def test_overlap_above_capacity_flags_each_shared_day() -> None:
    result = validate_allocation(
        _candidate(date(2024, 1, 5), date(2024, 1, 7), 0.75),
        HALF_TIME_JANUARY,
    )

    assert isinstance(result, Overallocation)
    assert result.status == "overallocated"
    assert result.is_overallocated is True
    assert [day.date for day in result.overallocated_days] == [
        date(2024, 1, 5),
        date(2024, 1, 6),
        date(2024, 1, 7),
    ]
    assert all(day.total_allocation == pytest.approx(1.25) for day in result.overallocated_days)
    assert result.total_allocation == pytest.approx(1.25)


def test_overlap_within_capacity_is_valid() -> None:
    result = validate_allocation(
        _candidate(date(2024, 1, 5), date(2024, 1, 7), 0.25),
        HALF_TIME_JANUARY,
    )

    assert isinstance(result, ValidAllocation)
    assert result.is_overallocated is False
    assert result.overallocated_days == ()
    assert result.total_allocation == 0.0


def test_missing_start_date_is_invalid_not_an_error() -> None:
    result = validate_allocation(
        _candidate(None, date(2024, 1, 7), 0.5),
        HALF_TIME_JANUARY,
    )

    assert isinstance(result, InvalidAllocation)
    assert result.status == "invalid"
    assert "start_date" in result.reason
    assert result.is_overallocated is False


def test_missing_person_and_allocation_are_both_reported() -> None:
    result = validate_allocation(
        AllocationCandidate(
            person_id=None,
            start_date=date(2024, 1, 1),
            end_date=date(2024, 1, 2),
            allocation=None,
        ),
        [],
    )

    assert isinstance(result, InvalidAllocation)
    assert "person_id" in result.reason
    assert "allocation" in result.reason


@pytest.mark.parametrize(
    ("start", "end", "allocation"),
    [
        (date(2024, 1, 10), date(2024, 1, 1), 0.5),
        (date(2024, 1, 1), date(2024, 1, 2), 1.5),
        (date(2024, 1, 1), date(2024, 1, 2), -0.25),
        (date(2024, 1, 1), date(2024, 1, 2), float("nan")),
    ],
)
def test_malformed_candidates_are_invalid(start, end, allocation) -> None:
    assert isinstance(validate_allocation(_candidate(start, end, allocation), []), InvalidAllocation)


def test_exactly_full_capacity_is_not_flagged() -> None:
    existing = [_assignment("a1", date(2024, 1, 1), date(2024, 1, 10), 1.0)]

    result = validate_allocation(_candidate(date(2024, 1, 3), date(2024, 1, 4), 0.0), existing)

    assert isinstance(result, ValidAllocation)


def test_two_halves_make_full_capacity() -> None:
    result = validate_allocation(
        _candidate(date(2024, 1, 1), date(2024, 1, 10), 0.5),
        HALF_TIME_JANUARY,
    )

    assert isinstance(result, ValidAllocation)


def test_float_accumulation_error_stays_within_tolerance() -> None:
    existing = [
        _assignment("a1", date(2024, 1, 1), date(2024, 1, 1), 0.1),
        _assignment("a2", date(2024, 1, 1), date(2024, 1, 1), 0.2),
    ]

    result = validate_allocation(_candidate(date(2024, 1, 1), date(2024, 1, 1), 0.7), existing)

    assert isinstance(result, ValidAllocation)


def test_editing_a_stored_assignment_excludes_its_previous_version() -> None:
    existing = [_assignment("a1", date(2024, 1, 1), date(2024, 1, 10), 0.75)]
    candidate = _candidate(date(2024, 1, 1), date(2024, 1, 10), 0.75, assignment_id="a1")

    assert isinstance(validate_allocation(candidate, existing), ValidAllocation)

    as_new = _candidate(date(2024, 1, 1), date(2024, 1, 10), 0.75)
    assert isinstance(validate_allocation(as_new, existing), Overallocation)


def test_assignments_outside_the_range_do_not_count() -> None:
    existing = [
        _assignment("a1", date(2023, 12, 1), date(2023, 12, 31), 1.0),
        _assignment("a2", date(2024, 2, 1), date(2024, 2, 28), 1.0),
    ]

    result = validate_allocation(_candidate(date(2024, 1, 1), date(2024, 1, 31), 1.0), existing)

    assert isinstance(result, ValidAllocation)


def test_flagged_days_are_sorted_unique_and_peak_is_max() -> None:
    existing = [
        _assignment("a1", date(2024, 1, 1), date(2024, 1, 5), 0.5),
        _assignment("a2", date(2024, 1, 3), date(2024, 1, 4), 0.5),
        _assignment("a3", date(2024, 1, 4), date(2024, 1, 8), 0.25),
    ]

    result = validate_allocation(_candidate(date(2024, 1, 1), date(2024, 1, 8), 0.75), existing)

    assert isinstance(result, Overallocation)
    flagged = [day.date for day in result.overallocated_days]
    assert flagged == sorted(set(flagged))
    totals = {day.date: day.total_allocation for day in result.overallocated_days}
    assert totals[date(2024, 1, 1)] == pytest.approx(1.25)
    assert totals[date(2024, 1, 4)] == pytest.approx(2.0)
    assert date(2024, 1, 6) not in totals
    assert result.total_allocation == pytest.approx(2.0)


def test_existing_rows_without_allocation_count_as_zero() -> None:
    existing = [_assignment("a1", date(2024, 1, 1), date(2024, 1, 2), None)]

    result = validate_allocation(_candidate(date(2024, 1, 1), date(2024, 1, 2), 1.0), existing)

    assert isinstance(result, ValidAllocation)


def test_iter_days_is_inclusive() -> None:
    assert list(iter_days(date(2024, 2, 28), date(2024, 3, 1))) == [
        date(2024, 2, 28),
        date(2024, 2, 29),
        date(2024, 3, 1),
    ]
    assert list(iter_days(date(2024, 1, 1), date(2024, 1, 1))) == [date(2024, 1, 1)]


def test_daily_totals_clip_assignments_to_window() -> None:
    existing = [
        _assignment("a1", date(2023, 12, 30), date(2024, 1, 2), 0.5),
        _assignment("a2", date(2024, 1, 2), date(2024, 1, 9), 0.25),
    ]

    totals = daily_allocation_totals(existing, date(2024, 1, 1), date(2024, 1, 3))

    assert totals == {
        date(2024, 1, 1): pytest.approx(0.5),
        date(2024, 1, 2): pytest.approx(0.75),
        date(2024, 1, 3): pytest.approx(0.25),
    }


@pytest.mark.parametrize("allocation", [0.25, 0.5, 1.0])
def test_any_positive_candidate_on_a_full_day_is_flagged(allocation: float) -> None:
    existing = [
        _assignment("a1", date(2024, 1, 1), date(2024, 1, 1), 0.75),
        _assignment("a2", date(2024, 1, 1), date(2024, 1, 1), 0.25),
    ]

    result = validate_allocation(_candidate(date(2024, 1, 1), date(2024, 1, 1), allocation), existing)

    assert isinstance(result, Overallocation)
    assert result.total_allocation == pytest.approx(1.0 + allocation)


def test_no_existing_assignments_never_overallocates() -> None:
    result = validate_allocation(_candidate(date(2024, 1, 1), date(2024, 12, 31), 1.0), [])

    assert isinstance(result, ValidAllocation)
