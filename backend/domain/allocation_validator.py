"""Per-day overallocation check for a candidate assignment.

The check is a pure function of the candidate and the person's existing
assignments: it enumerates every day of the candidate's inclusive range,
sums the allocation of every existing assignment covering that day, adds
the candidate's own allocation and flags the days whose total exceeds full
capacity. Malformed candidates produce an ``InvalidAllocation`` result
instead of an exception so callers can render every outcome uniformly.
"""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Iterator, Optional, Protocol, Sequence, Union


FULL_CAPACITY = 1.0
DEFAULT_TOLERANCE = 1e-9


class AllocationSpan(Protocol):
    """Anything with an id, an inclusive date range and an allocation."""

    assignment_id: Optional[str]
    start_date: date
    end_date: date
    allocation: Optional[float]


@dataclass(frozen=True)
class AllocationCandidate:
    """Assignment being created (no id yet) or edited (id of the stored row)."""

    person_id: Optional[str]
    start_date: Optional[date]
    end_date: Optional[date]
    allocation: Optional[float]
    assignment_id: Optional[str] = None


@dataclass(frozen=True)
class OverallocatedDay:
    date: date
    total_allocation: float


@dataclass(frozen=True)
class ValidAllocation:
    status = "valid"
    is_overallocated = False
    total_allocation = 0.0
    overallocated_days: tuple[OverallocatedDay, ...] = ()


@dataclass(frozen=True)
class InvalidAllocation:
    reason: str

    status = "invalid"
    is_overallocated = False
    total_allocation = 0.0
    overallocated_days: tuple[OverallocatedDay, ...] = ()


@dataclass(frozen=True)
class Overallocation:
    overallocated_days: tuple[OverallocatedDay, ...]

    status = "overallocated"
    is_overallocated = True

    @property
    def total_allocation(self) -> float:
        """Peak single-day total across the flagged days."""
        return max(day.total_allocation for day in self.overallocated_days)


ValidationResult = Union[ValidAllocation, InvalidAllocation, Overallocation]


def iter_days(start_date: date, end_date: date) -> Iterator[date]:
    """Yield every calendar day from start_date to end_date inclusive."""
    current = start_date
    while current <= end_date:
        yield current
        current += timedelta(days=1)


def daily_allocation_totals(
    assignments: Iterable[AllocationSpan],
    start_date: date,
    end_date: date,
) -> dict[date, float]:
    """Sum allocations per day over the window, clipping each assignment to it.

    Days without any covering assignment are absent from the result.
    """
    totals: dict[date, float] = defaultdict(float)
    for assignment in assignments:
        if assignment.start_date is None or assignment.end_date is None:
            continue
        overlap_start = max(assignment.start_date, start_date)
        overlap_end = min(assignment.end_date, end_date)
        if overlap_start > overlap_end:
            continue
        allocation = float(assignment.allocation or 0.0)
        for day in iter_days(overlap_start, overlap_end):
            totals[day] += allocation
    return dict(totals)


def _missing_fields(candidate: AllocationCandidate) -> list[str]:
    missing = []
    if not candidate.person_id:
        missing.append("person_id")
    if candidate.start_date is None:
        missing.append("start_date")
    if candidate.end_date is None:
        missing.append("end_date")
    if candidate.allocation is None:
        missing.append("allocation")
    return missing


def check_candidate(candidate: AllocationCandidate) -> Optional[InvalidAllocation]:
    """Return an InvalidAllocation when the candidate cannot be checked."""
    missing = _missing_fields(candidate)
    if missing:
        return InvalidAllocation(reason=f"missing required data: {', '.join(missing)}")
    if candidate.start_date > candidate.end_date:
        return InvalidAllocation(reason="start_date must be on or before end_date")
    allocation = candidate.allocation
    if not math.isfinite(allocation) or not 0.0 <= allocation <= FULL_CAPACITY:
        return InvalidAllocation(reason="allocation must be between 0 and 1")
    return None


def validate_allocation(
    candidate: AllocationCandidate,
    existing_assignments: Sequence[AllocationSpan],
    tolerance: float = DEFAULT_TOLERANCE,
) -> ValidationResult:
    """Check whether adding ``candidate`` pushes any day above full capacity.

    ``existing_assignments`` must already be restricted to the candidate's
    person. A stored record sharing the candidate's id is its own previous
    version and is left out of the sums.
    """
    invalid = check_candidate(candidate)
    if invalid is not None:
        return invalid

    others = [
        assignment
        for assignment in existing_assignments
        if candidate.assignment_id is None
        or assignment.assignment_id != candidate.assignment_id
    ]
    existing_totals = daily_allocation_totals(
        others,
        candidate.start_date,
        candidate.end_date,
    )

    threshold = FULL_CAPACITY + tolerance
    flagged = []
    for day in iter_days(candidate.start_date, candidate.end_date):
        total = existing_totals.get(day, 0.0) + candidate.allocation
        if total > threshold:
            flagged.append(OverallocatedDay(date=day, total_allocation=total))

    if not flagged:
        return ValidAllocation()
    return Overallocation(overallocated_days=tuple(flagged))
