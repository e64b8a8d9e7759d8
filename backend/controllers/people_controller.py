"""HTTP controller layer for the people roster."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from backend.controllers.dependencies import (
    get_current_actor,
    get_people_service,
    require_admin,
)
from backend.domain.models import Person
from backend.services.people_service import (
    PeopleService,
    PersonNotFoundError,
    PersonValidationError,
)
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["people"])


class PersonResponse(BaseModel):
    id: str
    first_name: str
    last_name: str
    name: str
    profile: str
    status: str
    person_type: str
    start_date: date
    end_date: date | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PersonCreateRequest(BaseModel):
    first_name: str = Field(min_length=1, max_length=120)
    last_name: str = Field(min_length=1, max_length=120)
    profile: str
    status: str = "Active"
    person_type: str = "Internal"
    start_date: date
    end_date: Optional[date] = None


class PersonUpdateRequest(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    profile: Optional[str] = None
    status: Optional[str] = None
    person_type: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


def to_person_response(person: Person) -> PersonResponse:
    return PersonResponse(
        id=person.person_id,
        first_name=person.first_name,
        last_name=person.last_name,
        name=person.display_name,
        profile=person.profile,
        status=person.status,
        person_type=person.person_type,
        start_date=person.start_date,
        end_date=person.end_date,
        created_at=person.created_at,
        updated_at=person.updated_at,
    )


@router.get(
    "/people",
    response_model=list[PersonResponse],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
async def list_people(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    person_type: Optional[str] = Query(default=None),
    profile: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None, max_length=120),
    service: PeopleService = Depends(get_people_service),
) -> list[PersonResponse]:
    people = service.list_people(
        status=status_filter,
        person_type=person_type,
        profile=profile,
        search=search,
    )
    return [to_person_response(person) for person in people]


@router.post(
    "/people",
    response_model=PersonResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_person(
    payload: PersonCreateRequest,
    service: PeopleService = Depends(get_people_service),
    actor: str = Depends(get_current_actor),
) -> PersonResponse:
    try:
        person = service.create_person(**payload.model_dump(), actor=actor)
        return to_person_response(person)
    except PersonValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected person creation failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create person",
        ) from exc


@router.get(
    "/people/{person_id}",
    response_model=PersonResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
async def get_person(
    person_id: str,
    service: PeopleService = Depends(get_people_service),
) -> PersonResponse:
    try:
        return to_person_response(service.get_person(person_id))
    except PersonNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc


@router.patch(
    "/people/{person_id}",
    response_model=PersonResponse,
    status_code=status.HTTP_200_OK,
)
async def update_person(
    person_id: str,
    payload: PersonUpdateRequest,
    service: PeopleService = Depends(get_people_service),
    actor: str = Depends(get_current_actor),
) -> PersonResponse:
    try:
        person = service.update_person(
            person_id,
            payload.model_dump(exclude_unset=True),
            actor=actor,
        )
        return to_person_response(person)
    except PersonNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except PersonValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected person update failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update person",
        ) from exc


@router.delete(
    "/people/{person_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_person(
    person_id: str,
    service: PeopleService = Depends(get_people_service),
    actor: str = Depends(get_current_actor),
) -> None:
    try:
        service.delete_person(person_id, actor=actor)
    except PersonNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
