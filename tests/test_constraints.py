"""Tests for field rules applied before writes."""

from __future__ import annotations

from datetime import date

import pytest

from backend.domain.constraints import (
    validate_allocation_value,
    validate_assignment_fields,
    validate_client_fields,
    validate_person_fields,
    validate_project_fields,
)


def valid_assignment(**overrides) -> dict:
    defaults = {
        "person_id": "p1",
        "project_id": "proj1",
        "start_date": date(2024, 1, 1),
        "end_date": date(2024, 1, 31),
        "allocation": 0.5,
    }
    defaults.update(overrides)
    return defaults


def valid_person(**overrides) -> dict:
    defaults = {
        "first_name": "Ana",
        "last_name": "Garcia",
        "profile": "QA",
        "status": "Active",
        "person_type": "Internal",
        "start_date": date(2023, 1, 1),
        "end_date": None,
    }
    defaults.update(overrides)
    return defaults


def valid_project(**overrides) -> dict:
    defaults = {
        "name": "Storefront",
        "status": "In Progress",
        "start_date": date(2024, 1, 1),
        "end_date": date(2024, 6, 30),
        "fte": 2.0,
        "contract_type": "T&M",
    }
    defaults.update(overrides)
    return defaults


# --- allocation ---

@pytest.mark.parametrize("value", [0.25, 0.5, 0.75, 1.0])
def test_allowed_allocation_values_pass(value: float) -> None:
    validate_allocation_value(value)


@pytest.mark.parametrize("value", [0.0, 0.3, 1.25, float("inf")])
def test_other_allocation_values_raise(value: float) -> None:
    with pytest.raises(ValueError):
        validate_allocation_value(value)


# --- assignment ---

def test_valid_assignment_passes() -> None:
    validate_assignment_fields(**valid_assignment())


def test_single_day_assignment_passes() -> None:
    validate_assignment_fields(
        **valid_assignment(start_date=date(2024, 1, 1), end_date=date(2024, 1, 1))
    )


def test_assignment_end_before_start_raises() -> None:
    with pytest.raises(ValueError, match="start_date"):
        validate_assignment_fields(
            **valid_assignment(start_date=date(2024, 2, 1), end_date=date(2024, 1, 1))
        )


@pytest.mark.parametrize("field", ["person_id", "project_id", "start_date", "end_date"])
def test_assignment_missing_field_raises(field: str) -> None:
    with pytest.raises(ValueError):
        validate_assignment_fields(**valid_assignment(**{field: None}))


# --- person ---

def test_valid_person_passes() -> None:
    validate_person_fields(**valid_person())


@pytest.mark.parametrize(
    "overrides",
    [
        {"first_name": "  "},
        {"profile": "Astronaut"},
        {"status": "Retired"},
        {"person_type": "Contractor"},
        {"end_date": date(2022, 1, 1)},
    ],
)
def test_invalid_person_raises(overrides: dict) -> None:
    with pytest.raises(ValueError):
        validate_person_fields(**valid_person(**overrides))


# --- project / client ---

def test_valid_project_passes() -> None:
    validate_project_fields(**valid_project())


def test_project_without_optional_fields_passes() -> None:
    validate_project_fields(
        **valid_project(start_date=None, end_date=None, fte=None, contract_type=None)
    )


@pytest.mark.parametrize(
    "overrides",
    [
        {"name": ""},
        {"status": "Cancelled"},
        {"fte": -1.0},
        {"contract_type": "Barter"},
        {"start_date": date(2024, 7, 1)},
    ],
)
def test_invalid_project_raises(overrides: dict) -> None:
    with pytest.raises(ValueError):
        validate_project_fields(**valid_project(**overrides))


def test_blank_client_name_raises() -> None:
    with pytest.raises(ValueError):
        validate_client_fields(name=" ")
