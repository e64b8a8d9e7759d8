"""People roster management."""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Any, Mapping, Optional

from backend.domain.constraints import validate_person_fields
from backend.domain.models import Person
from backend.repository.data_repository import DataRepository, new_id
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)

_UPDATABLE_FIELDS = frozenset(
    {"first_name", "last_name", "profile", "status", "person_type", "start_date", "end_date"}
)
_NAME_FIELDS = frozenset({"first_name", "last_name"})


class PersonValidationError(Exception):
    """Raised when person inputs break field rules."""


class PersonNotFoundError(Exception):
    """Raised when a person id does not exist."""


class PeopleService:
    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    def list_people(
        self,
        *,
        status: Optional[str] = None,
        person_type: Optional[str] = None,
        profile: Optional[str] = None,
        search: Optional[str] = None,
    ) -> list[Person]:
        return self._repository.list_people(
            status=status,
            person_type=person_type,
            profile=profile,
            search=search,
        )

    def get_person(self, person_id: str) -> Person:
        person = self._repository.get_person(person_id)
        if person is None:
            raise PersonNotFoundError(f"Person {person_id} not found")
        return person

    def create_person(
        self,
        *,
        first_name: str,
        last_name: str,
        profile: str,
        start_date: date,
        status: str = "Active",
        person_type: str = "Internal",
        end_date: Optional[date] = None,
        actor: Optional[str] = None,
    ) -> Person:
        person = Person(
            person_id=new_id(),
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            profile=profile,
            status=status,
            person_type=person_type,
            start_date=start_date,
            end_date=end_date,
        )
        self._validate(person)
        stored = self._repository.insert_person(person)
        self._repository.log_activity(
            actor=actor or self._settings.default_actor,
            action="create",
            resource_type="people",
            resource_id=stored.person_id,
            metadata={"name": stored.display_name},
        )
        logger.info("Created person %s (%s)", stored.person_id, stored.display_name)
        return stored

    def update_person(
        self,
        person_id: str,
        changes: Mapping[str, Any],
        *,
        actor: Optional[str] = None,
    ) -> Person:
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise PersonValidationError(f"Unsupported person fields: {', '.join(sorted(unknown))}")
        current = self.get_person(person_id)
        cleaned = {
            key: value.strip() if key in _NAME_FIELDS and isinstance(value, str) else value
            for key, value in changes.items()
        }
        updated = replace(current, **cleaned)
        self._validate(updated)
        stored = self._repository.update_person(updated)
        self._repository.log_activity(
            actor=actor or self._settings.default_actor,
            action="update",
            resource_type="people",
            resource_id=person_id,
            metadata={"changes": sorted(changes)},
        )
        return stored

    def delete_person(self, person_id: str, *, actor: Optional[str] = None) -> None:
        """Delete a person; their assignments are removed with them."""
        if not self._repository.delete_person(person_id):
            raise PersonNotFoundError(f"Person {person_id} not found")
        self._repository.log_activity(
            actor=actor or self._settings.default_actor,
            action="delete",
            resource_type="people",
            resource_id=person_id,
        )

    @staticmethod
    def _validate(person: Person) -> None:
        try:
            validate_person_fields(
                first_name=person.first_name,
                last_name=person.last_name,
                profile=person.profile,
                status=person.status,
                person_type=person.person_type,
                start_date=person.start_date,
                end_date=person.end_date,
            )
        except ValueError as exc:
            raise PersonValidationError(str(exc)) from exc
