from __future__ import annotations

import sqlite3
import threading
from dataclasses import replace
from datetime import date

import pytest

from backend.domain.allocation_validator import InvalidAllocation, Overallocation, ValidAllocation
from backend.domain.models import Person, Project
from backend.repository.data_repository import DataRepository, new_id
from backend.services.assignment_service import (
    AssignmentNotFoundError,
    AssignmentService,
    AssignmentValidationError,
    OverallocationError,
)
from backend.utils.config import get_settings


def _build_test_settings(tmp_path, filename: str, **overrides):
    return replace(
        get_settings(),
        database_path=tmp_path / filename,
        seed_demo_data=False,
        **overrides,
    )


def _build_service(tmp_path, **overrides) -> tuple[AssignmentService, DataRepository, str, str]:
    settings = _build_test_settings(tmp_path, "assignment_service.db", **overrides)
    repository = DataRepository(settings)
    repository.initialize_database()
    person = repository.insert_person(
        Person(
            person_id=new_id(),
            first_name="Carla",
            last_name="Lopez",
            profile="Backend Developer",
            status="Active",
            person_type="Internal",
            start_date=date(2023, 1, 1),
        )
    )
    project = repository.insert_project(
        Project(project_id=new_id(), name="Loyalty App", status="In Progress", fte=1.0)
    )
    service = AssignmentService(repository=repository, settings=settings)
    return service, repository, person.person_id, project.project_id


def _create(service, person_id, project_id, start, end, allocation, **kwargs):
    return service.create_assignment(
        person_id=person_id,
        project_id=project_id,
        start_date=start,
        end_date=end,
        allocation=allocation,
        **kwargs,
    )


def test_create_assignment_persists_and_audits(tmp_path):
    service, repository, person_id, project_id = _build_service(tmp_path)

    result = _create(
        service, person_id, project_id, date(2024, 1, 1), date(2024, 1, 10), 0.5, actor="ana"
    )

    assert isinstance(result.validation, ValidAllocation)
    assert repository.get_assignment(result.assignment.assignment_id) is not None
    log = repository.list_activity_logs(resource_type="assignments")[0]
    assert log.actor == "ana"
    assert log.action == "create"
    assert log.metadata["overallocated"] is False


def test_overallocating_create_is_rejected_without_writing(tmp_path):
    service, repository, person_id, project_id = _build_service(tmp_path)
    _create(service, person_id, project_id, date(2024, 1, 1), date(2024, 1, 10), 0.5)

    with pytest.raises(OverallocationError) as exc_info:
        _create(service, person_id, project_id, date(2024, 1, 5), date(2024, 1, 7), 0.75)

    result = exc_info.value.result
    assert isinstance(result, Overallocation)
    assert [day.date for day in result.overallocated_days] == [
        date(2024, 1, 5),
        date(2024, 1, 6),
        date(2024, 1, 7),
    ]
    assert repository.count_assignments() == 1


def test_override_saves_overallocated_assignment(tmp_path):
    service, repository, person_id, project_id = _build_service(tmp_path)
    _create(service, person_id, project_id, date(2024, 1, 1), date(2024, 1, 10), 0.5)

    result = _create(
        service,
        person_id,
        project_id,
        date(2024, 1, 5),
        date(2024, 1, 7),
        0.75,
        allow_overallocation=True,
    )

    assert result.validation.is_overallocated is True
    assert result.validation.total_allocation == pytest.approx(1.25)
    assert repository.count_assignments() == 2


def test_override_is_ignored_when_disabled_in_settings(tmp_path):
    service, repository, person_id, project_id = _build_service(
        tmp_path, allocation_override_allowed=False
    )
    _create(service, person_id, project_id, date(2024, 1, 1), date(2024, 1, 10), 1.0)

    with pytest.raises(OverallocationError):
        _create(
            service,
            person_id,
            project_id,
            date(2024, 1, 1),
            date(2024, 1, 1),
            0.25,
            allow_overallocation=True,
        )
    assert repository.count_assignments() == 1


def test_update_does_not_count_previous_version(tmp_path):
    service, _, person_id, project_id = _build_service(tmp_path)
    created = _create(service, person_id, project_id, date(2024, 1, 1), date(2024, 1, 10), 0.75)

    updated = service.update_assignment(
        created.assignment.assignment_id,
        {"allocation": 1.0, "end_date": date(2024, 1, 15)},
    )

    assert isinstance(updated.validation, ValidAllocation)
    assert updated.assignment.allocation == 1.0
    assert updated.assignment.end_date == date(2024, 1, 15)


def test_update_rejects_unknown_fields_and_missing_ids(tmp_path):
    service, _, person_id, project_id = _build_service(tmp_path)
    created = _create(service, person_id, project_id, date(2024, 1, 1), date(2024, 1, 2), 0.5)

    with pytest.raises(AssignmentValidationError):
        service.update_assignment(created.assignment.assignment_id, {"color": "blue"})
    with pytest.raises(AssignmentNotFoundError):
        service.update_assignment("missing", {"allocation": 0.5})


@pytest.mark.parametrize(
    ("start", "end", "allocation"),
    [
        (date(2024, 1, 10), date(2024, 1, 1), 0.5),
        (date(2024, 1, 1), date(2024, 1, 2), 0.3),
    ],
)
def test_create_rejects_malformed_fields(tmp_path, start, end, allocation):
    service, repository, person_id, project_id = _build_service(tmp_path)

    with pytest.raises(AssignmentValidationError):
        _create(service, person_id, project_id, start, end, allocation)
    assert repository.count_assignments() == 0


def test_create_rejects_unknown_person(tmp_path):
    service, _, _, project_id = _build_service(tmp_path)

    with pytest.raises(AssignmentValidationError, match="does not exist"):
        _create(service, "ghost", project_id, date(2024, 1, 1), date(2024, 1, 2), 0.5)


def test_validate_reports_incomplete_candidates_without_reading_storage(tmp_path, monkeypatch):
    service, repository, person_id, _ = _build_service(tmp_path)

    def fail(_person_id):
        raise AssertionError("storage must not be read")

    monkeypatch.setattr(repository, "list_assignments_for_person", fail)
    result = service.validate_assignment(
        person_id=person_id,
        start_date=None,
        end_date=date(2024, 1, 2),
        allocation=0.5,
    )

    assert isinstance(result, InvalidAllocation)


def test_validate_propagates_retrieval_failures(tmp_path, monkeypatch):
    service, repository, person_id, _ = _build_service(tmp_path)

    def broken(_person_id):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(repository, "list_assignments_for_person", broken)
    with pytest.raises(sqlite3.OperationalError):
        service.validate_assignment(
            person_id=person_id,
            start_date=date(2024, 1, 1),
            end_date=date(2024, 1, 2),
            allocation=0.5,
        )


def test_validate_accepts_zero_allocation_at_full_capacity(tmp_path):
    service, _, person_id, project_id = _build_service(tmp_path)
    _create(service, person_id, project_id, date(2024, 1, 1), date(2024, 1, 10), 1.0)

    result = service.validate_assignment(
        person_id=person_id,
        start_date=date(2024, 1, 3),
        end_date=date(2024, 1, 4),
        allocation=0.0,
    )

    assert isinstance(result, ValidAllocation)


def test_delete_assignment(tmp_path):
    service, repository, person_id, project_id = _build_service(tmp_path)
    created = _create(service, person_id, project_id, date(2024, 1, 1), date(2024, 1, 2), 0.5)

    service.delete_assignment(created.assignment.assignment_id, actor="ana")

    assert repository.count_assignments() == 0
    with pytest.raises(AssignmentNotFoundError):
        service.delete_assignment(created.assignment.assignment_id)


def test_concurrent_creates_cannot_jointly_overallocate(tmp_path):
    service, repository, person_id, project_id = _build_service(
        tmp_path,
        allocation_override_allowed=False,
        database_timeout_seconds=30.0,
    )
    writers = 6
    barrier = threading.Barrier(writers)
    outcomes: list[str] = []
    outcomes_lock = threading.Lock()

    def create_three_quarters() -> None:
        barrier.wait()
        try:
            _create(service, person_id, project_id, date(2024, 1, 1), date(2024, 1, 5), 0.75)
            outcome = "saved"
        except OverallocationError:
            outcome = "rejected"
        with outcomes_lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=create_three_quarters) for _ in range(writers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(outcomes) == ["rejected"] * (writers - 1) + ["saved"]
    assert repository.count_assignments() == 1
