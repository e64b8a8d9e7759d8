from __future__ import annotations

from dataclasses import replace
from datetime import date

import pytest

from backend.repository.data_repository import DataRepository
from backend.services.people_service import (
    PeopleService,
    PersonNotFoundError,
    PersonValidationError,
)
from backend.utils.config import get_settings


def _build_service(tmp_path) -> tuple[PeopleService, DataRepository]:
    settings = replace(
        get_settings(),
        database_path=tmp_path / "people_service.db",
        seed_demo_data=False,
    )
    repository = DataRepository(settings)
    repository.initialize_database()
    return PeopleService(repository=repository, settings=settings), repository


def _add(service: PeopleService, first_name: str, last_name: str, **kwargs):
    return service.create_person(
        first_name=first_name,
        last_name=last_name,
        profile=kwargs.pop("profile", "QA"),
        start_date=kwargs.pop("start_date", date(2023, 1, 1)),
        **kwargs,
    )


def test_list_people_filters_by_status_type_and_search(tmp_path):
    service, _ = _build_service(tmp_path)
    _add(service, "Ana", "Garcia")
    _add(service, "Bruno", "Diaz", status="Paused")
    _add(service, "Carla", "Garcia", person_type="External", profile="UX Designer")

    assert [p.first_name for p in service.list_people()] == ["Ana", "Bruno", "Carla"]
    assert [p.first_name for p in service.list_people(status="Paused")] == ["Bruno"]
    assert [p.first_name for p in service.list_people(person_type="External")] == ["Carla"]
    assert [p.first_name for p in service.list_people(profile="UX Designer")] == ["Carla"]
    assert [p.first_name for p in service.list_people(search="garcia")] == ["Ana", "Carla"]
    assert [p.first_name for p in service.list_people(search=" Ana Gar ")] == ["Ana"]
    assert service.list_people(status="Terminated", search="Ana") == []


def test_create_strips_names(tmp_path):
    service, _ = _build_service(tmp_path)

    person = _add(service, "  Ana ", " Garcia  ")

    assert person.first_name == "Ana"
    assert person.last_name == "Garcia"


def test_update_person_applies_changes_and_strips_names(tmp_path):
    service, _ = _build_service(tmp_path)
    person = _add(service, "Ana", "Garcia")

    updated = service.update_person(
        person.person_id,
        {"first_name": " Anabel ", "status": "Paused", "end_date": date(2024, 12, 31)},
        actor="planner",
    )

    assert updated.first_name == "Anabel"
    assert updated.status == "Paused"
    assert updated.end_date == date(2024, 12, 31)
    assert service.get_person(person.person_id) == updated


def test_update_person_rejects_bad_input(tmp_path):
    service, _ = _build_service(tmp_path)
    person = _add(service, "Ana", "Garcia")

    with pytest.raises(PersonValidationError, match="Unsupported"):
        service.update_person(person.person_id, {"salary": 10})
    with pytest.raises(PersonValidationError):
        service.update_person(person.person_id, {"end_date": date(2022, 1, 1)})
    with pytest.raises(PersonNotFoundError):
        service.update_person("missing", {"status": "Paused"})
    assert service.get_person(person.person_id).end_date is None


def test_delete_person_and_missing_id(tmp_path):
    service, _ = _build_service(tmp_path)
    person = _add(service, "Ana", "Garcia")

    service.delete_person(person.person_id)

    with pytest.raises(PersonNotFoundError):
        service.get_person(person.person_id)
    with pytest.raises(PersonNotFoundError):
        service.delete_person(person.person_id)


def test_every_mutation_is_logged(tmp_path):
    service, repository = _build_service(tmp_path)
    person = _add(service, "Ana", "Garcia", actor="planner")
    service.update_person(person.person_id, {"status": "Paused"}, actor="planner")
    service.delete_person(person.person_id)

    logs = repository.list_activity_logs(resource_type="people", resource_id=person.person_id)

    assert [log.action for log in logs] == ["delete", "update", "create"]
    assert [log.actor for log in logs] == [get_settings().default_actor, "planner", "planner"]
    assert logs[1].metadata == {"changes": ["status"]}
