"""Display summary for an overallocated validation result."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence

from backend.domain.allocation_validator import OverallocatedDay, ValidationResult


DISPLAY_DATE_FORMAT = "%d/%m/%Y"
# Above this many days the affected period collapses to "first - last".
MAX_LISTED_DAYS = 3


@dataclass(frozen=True)
class OverallocationWarning:
    day_count: int
    max_percentage: int
    affected_period: str
    message: str


def format_display_date(value: date) -> str:
    return value.strftime(DISPLAY_DATE_FORMAT)


def format_affected_period(days: Sequence[OverallocatedDay]) -> str:
    if not days:
        return ""
    if len(days) == 1:
        return format_display_date(days[0].date)
    if len(days) <= MAX_LISTED_DAYS:
        return ", ".join(format_display_date(day.date) for day in days)
    return f"{format_display_date(days[0].date)} - {format_display_date(days[-1].date)}"


def build_overallocation_warning(result: ValidationResult) -> Optional[OverallocationWarning]:
    """Summarise an overallocation; ``None`` for valid or invalid results."""
    if not result.is_overallocated:
        return None

    days = result.overallocated_days
    max_percentage = round(result.total_allocation * 100)
    if len(days) == 1:
        message = (
            f"Overallocation of {max_percentage}% on "
            f"{format_display_date(days[0].date)}"
        )
    else:
        message = f"Overallocation of {max_percentage}% across {len(days)} days of the period"

    return OverallocationWarning(
        day_count=len(days),
        max_percentage=max_percentage,
        affected_period=format_affected_period(days),
        message=message,
    )
