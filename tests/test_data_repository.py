from __future__ import annotations

import sqlite3
from dataclasses import replace
from datetime import date

import pytest

from backend.domain.models import Assignment, Client, Person, Project
from backend.repository.data_repository import DataRepository, new_id
from backend.utils.config import get_settings


def _build_test_settings(tmp_path, filename: str):
    return replace(
        get_settings(),
        database_path=tmp_path / filename,
        seed_demo_data=False,
    )


def _build_repository(tmp_path, filename: str = "repository_test.db") -> DataRepository:
    repository = DataRepository(_build_test_settings(tmp_path, filename))
    repository.initialize_database()
    return repository


def _insert_person(repository: DataRepository, first_name: str = "Ana") -> Person:
    return repository.insert_person(
        Person(
            person_id=new_id(),
            first_name=first_name,
            last_name="Garcia",
            profile="QA",
            status="Active",
            person_type="Internal",
            start_date=date(2023, 1, 1),
        )
    )


def _insert_project(repository: DataRepository, client_id=None) -> Project:
    return repository.insert_project(
        Project(
            project_id=new_id(),
            name="Storefront",
            status="In Progress",
            client_id=client_id,
            fte=1.0,
        )
    )


def _assignment(person_id: str, project_id: str, start: date, end: date, allocation: float):
    return Assignment(
        assignment_id=new_id(),
        person_id=person_id,
        project_id=project_id,
        start_date=start,
        end_date=end,
        allocation=allocation,
    )


def test_initialize_database_is_idempotent(tmp_path):
    repository = _build_repository(tmp_path)
    repository.initialize_database()

    with sqlite3.connect(repository.database_path) as conn:
        tables = {
            row[0]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table';")
        }
    assert {"Clients", "People", "Projects", "Assignments", "ActivityLogs"} <= tables


def test_demo_seed_runs_once(tmp_path):
    repository = _build_repository(tmp_path)

    assert repository.seed_demo_data_if_empty(today=date(2024, 3, 1)) == 7
    assert repository.seed_demo_data_if_empty(today=date(2024, 3, 1)) == 0
    assert repository.count_assignments() == 7
    assert len(repository.list_people()) == 5


def test_save_assignment_round_trips_and_upserts(tmp_path):
    repository = _build_repository(tmp_path)
    person = _insert_person(repository)
    project = _insert_project(repository)
    assignment = _assignment(
        person.person_id, project.project_id, date(2024, 1, 1), date(2024, 1, 10), 0.5
    )

    stored = repository.save_assignment(assignment)
    assert stored.assignment_id == assignment.assignment_id
    assert stored.start_date == date(2024, 1, 1)
    assert stored.allocation == 0.5
    assert stored.is_billable is True

    repository.save_assignment(replace(assignment, allocation=0.75))
    assert repository.count_assignments() == 1
    assert repository.get_assignment(assignment.assignment_id).allocation == 0.75


def test_guard_sees_person_rows_and_aborts_write(tmp_path):
    repository = _build_repository(tmp_path)
    person = _insert_person(repository)
    other = _insert_person(repository, first_name="Bruno")
    project = _insert_project(repository)
    first = _assignment(
        person.person_id, project.project_id, date(2024, 1, 1), date(2024, 1, 10), 0.5
    )
    repository.save_assignment(first)
    repository.save_assignment(
        _assignment(other.person_id, project.project_id, date(2024, 1, 1), date(2024, 1, 10), 1.0)
    )

    seen: list[list[Assignment]] = []

    def guard(existing: list[Assignment]) -> None:
        seen.append(existing)
        raise RuntimeError("rejected")

    with pytest.raises(RuntimeError, match="rejected"):
        repository.save_assignment(
            _assignment(
                person.person_id, project.project_id, date(2024, 1, 5), date(2024, 1, 7), 0.75
            ),
            guard=guard,
        )

    assert [row.assignment_id for row in seen[0]] == [first.assignment_id]
    assert repository.count_assignments() == 2


def test_list_assignments_filters_by_overlapping_window(tmp_path):
    repository = _build_repository(tmp_path)
    person = _insert_person(repository)
    project = _insert_project(repository)
    january = _assignment(
        person.person_id, project.project_id, date(2024, 1, 1), date(2024, 1, 31), 0.5
    )
    march = _assignment(
        person.person_id, project.project_id, date(2024, 3, 1), date(2024, 3, 31), 0.5
    )
    repository.save_assignment(january)
    repository.save_assignment(march)

    window = repository.list_assignments(start_date=date(2024, 1, 31), end_date=date(2024, 2, 15))

    assert [row.assignment_id for row in window] == [january.assignment_id]


def test_deleting_person_cascades_to_assignments(tmp_path):
    repository = _build_repository(tmp_path)
    person = _insert_person(repository)
    project = _insert_project(repository)
    repository.save_assignment(
        _assignment(person.person_id, project.project_id, date(2024, 1, 1), date(2024, 1, 2), 1.0)
    )

    assert repository.delete_person(person.person_id) is True
    assert repository.count_assignments() == 0
    assert repository.delete_person(person.person_id) is False


def test_deleting_client_detaches_projects(tmp_path):
    repository = _build_repository(tmp_path)
    client = repository.insert_client(Client(client_id=new_id(), name="Acme Corp"))
    project = _insert_project(repository, client_id=client.client_id)

    assert repository.get_client_by_name("acme corp").client_id == client.client_id
    assert repository.delete_client(client.client_id) is True
    assert repository.get_project(project.project_id).client_id is None


def test_activity_log_round_trips_metadata_newest_first(tmp_path):
    repository = _build_repository(tmp_path)
    first = repository.log_activity(
        actor="ana",
        action="create",
        resource_type="people",
        resource_id="p1",
        metadata={"name": "Ana Garcia"},
    )
    second = repository.log_activity(
        actor="ana",
        action="delete",
        resource_type="projects",
        resource_id="proj1",
    )

    entries = repository.list_activity_logs(limit=10)
    assert [entry.log_id for entry in entries] == [second, first]
    assert entries[1].metadata == {"name": "Ana Garcia"}
    assert entries[0].metadata == {}

    people_only = repository.list_activity_logs(resource_type="people")
    assert [entry.resource_id for entry in people_only] == ["p1"]
