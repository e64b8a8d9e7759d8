"""Domain-level field rules applied before anything is written."""

from __future__ import annotations

import math
from datetime import date
from typing import Optional

from backend.domain.models import (
    ALLOCATION_VALUES,
    CONTRACT_TYPES,
    PERSON_PROFILES,
    PERSON_STATUSES,
    PERSON_TYPES,
    PROJECT_STATUSES,
)


def validate_allocation_value(allocation: float) -> None:
    if allocation is None or not math.isfinite(allocation):
        raise ValueError("allocation is required")
    if not any(math.isclose(allocation, value) for value in ALLOCATION_VALUES):
        allowed = ", ".join(f"{value:g}" for value in ALLOCATION_VALUES)
        raise ValueError(f"allocation must be one of {allowed}")


def validate_date_range(
    start_date: Optional[date],
    end_date: Optional[date],
    *,
    label: str = "date range",
) -> None:
    if start_date is not None and end_date is not None and start_date > end_date:
        raise ValueError(f"{label}: start_date must be on or before end_date")


def validate_assignment_fields(
    *,
    person_id: str,
    project_id: str,
    start_date: date,
    end_date: date,
    allocation: float,
) -> None:
    if not person_id:
        raise ValueError("person_id is required")
    if not project_id:
        raise ValueError("project_id is required")
    if start_date is None or end_date is None:
        raise ValueError("start_date and end_date are required")
    validate_date_range(start_date, end_date, label="assignment")
    validate_allocation_value(allocation)


def validate_person_fields(
    *,
    first_name: str,
    last_name: str,
    profile: str,
    status: str,
    person_type: str,
    start_date: date,
    end_date: Optional[date],
) -> None:
    if not first_name or not first_name.strip():
        raise ValueError("first_name must be non-empty")
    if not last_name or not last_name.strip():
        raise ValueError("last_name must be non-empty")
    if profile not in PERSON_PROFILES:
        raise ValueError(f"profile must be one of {', '.join(PERSON_PROFILES)}")
    if status not in PERSON_STATUSES:
        raise ValueError(f"status must be one of {', '.join(PERSON_STATUSES)}")
    if person_type not in PERSON_TYPES:
        raise ValueError(f"person_type must be one of {', '.join(PERSON_TYPES)}")
    if start_date is None:
        raise ValueError("start_date is required")
    validate_date_range(start_date, end_date, label="person")


def validate_project_fields(
    *,
    name: str,
    status: str,
    start_date: Optional[date],
    end_date: Optional[date],
    fte: Optional[float],
    contract_type: Optional[str],
) -> None:
    if not name or not name.strip():
        raise ValueError("name must be non-empty")
    if status not in PROJECT_STATUSES:
        raise ValueError(f"status must be one of {', '.join(PROJECT_STATUSES)}")
    validate_date_range(start_date, end_date, label="project")
    if fte is not None and (not math.isfinite(fte) or fte < 0.0):
        raise ValueError("fte must be >= 0")
    if contract_type is not None and contract_type not in CONTRACT_TYPES:
        raise ValueError(f"contract_type must be one of {', '.join(CONTRACT_TYPES)}")


def validate_client_fields(*, name: str) -> None:
    if not name or not name.strip():
        raise ValueError("name must be non-empty")
