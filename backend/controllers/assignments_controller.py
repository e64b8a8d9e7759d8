"""HTTP controller layer for assignments and overallocation checks."""

from __future__ import annotations

import sqlite3
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator

from backend.controllers.dependencies import (
    get_assignment_service,
    get_current_actor,
    require_admin,
)
from backend.domain.allocation_validator import ValidationResult
from backend.domain.constraints import validate_allocation_value
from backend.domain.models import Assignment
from backend.domain.overallocation_warning import build_overallocation_warning
from backend.services.assignment_service import (
    AssignmentNotFoundError,
    AssignmentSaveResult,
    AssignmentService,
    AssignmentValidationError,
    OverallocationError,
)
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["assignments"])


def _check_allocation(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    validate_allocation_value(value)
    return value


class AssignmentResponse(BaseModel):
    id: str
    person_id: str
    project_id: str
    start_date: date
    end_date: date
    allocation: float = Field(ge=0.0, le=1.0)
    is_billable: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AssignmentCreateRequest(BaseModel):
    person_id: str = Field(min_length=1)
    project_id: str = Field(min_length=1)
    start_date: date
    end_date: date
    allocation: float
    is_billable: bool = True
    allow_overallocation: bool = False

    @field_validator("allocation")
    @classmethod
    def validate_allocation(cls, value: float) -> float:
        return _check_allocation(value)


class AssignmentUpdateRequest(BaseModel):
    person_id: Optional[str] = Field(default=None, min_length=1)
    project_id: Optional[str] = Field(default=None, min_length=1)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    allocation: Optional[float] = None
    is_billable: Optional[bool] = None
    allow_overallocation: bool = False

    @field_validator("allocation")
    @classmethod
    def validate_allocation(cls, value: Optional[float]) -> Optional[float]:
        return _check_allocation(value)


class ValidateAssignmentRequest(BaseModel):
    """Candidate to check; every field is optional so gaps come back as invalid."""

    assignment_id: Optional[str] = None
    person_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    allocation: Optional[float] = None


class OverallocatedDayResponse(BaseModel):
    date: date
    total_allocation: float = Field(ge=0.0)


class OverallocationWarningResponse(BaseModel):
    day_count: int = Field(ge=1)
    max_percentage: int = Field(ge=0)
    affected_period: str
    message: str


class ValidationResponse(BaseModel):
    status: str
    is_overallocated: bool
    total_allocation: float = Field(ge=0.0)
    overallocated_days: list[OverallocatedDayResponse]
    reason: Optional[str] = None
    warning: Optional[OverallocationWarningResponse] = None


class AssignmentSaveResponse(BaseModel):
    assignment: AssignmentResponse
    validation: ValidationResponse


def to_assignment_response(assignment: Assignment) -> AssignmentResponse:
    return AssignmentResponse(
        id=assignment.assignment_id,
        person_id=assignment.person_id,
        project_id=assignment.project_id,
        start_date=assignment.start_date,
        end_date=assignment.end_date,
        allocation=assignment.allocation,
        is_billable=assignment.is_billable,
        created_at=assignment.created_at,
        updated_at=assignment.updated_at,
    )


def to_validation_response(result: ValidationResult) -> ValidationResponse:
    warning = build_overallocation_warning(result)
    return ValidationResponse(
        status=result.status,
        is_overallocated=result.is_overallocated,
        total_allocation=result.total_allocation,
        overallocated_days=[
            OverallocatedDayResponse(date=day.date, total_allocation=day.total_allocation)
            for day in result.overallocated_days
        ],
        reason=getattr(result, "reason", None),
        warning=(
            OverallocationWarningResponse(
                day_count=warning.day_count,
                max_percentage=warning.max_percentage,
                affected_period=warning.affected_period,
                message=warning.message,
            )
            if warning is not None
            else None
        ),
    )


def _to_save_response(result: AssignmentSaveResult) -> AssignmentSaveResponse:
    return AssignmentSaveResponse(
        assignment=to_assignment_response(result.assignment),
        validation=to_validation_response(result.validation),
    )


def _overallocation_conflict(exc: OverallocationError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={
            "message": str(exc),
            "validation": to_validation_response(exc.result).model_dump(mode="json"),
        },
    )


@router.get(
    "/assignments",
    response_model=list[AssignmentResponse],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
async def list_assignments(
    person_id: Optional[str] = Query(default=None),
    project_id: Optional[str] = Query(default=None),
    start_date: Optional[date] = Query(default=None),
    end_date: Optional[date] = Query(default=None),
    service: AssignmentService = Depends(get_assignment_service),
) -> list[AssignmentResponse]:
    try:
        assignments = service.list_assignments(
            person_id=person_id,
            project_id=project_id,
            start_date=start_date,
            end_date=end_date,
        )
        return [to_assignment_response(item) for item in assignments]
    except AssignmentValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected assignment listing failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list assignments",
        ) from exc


@router.post(
    "/assignments/validate",
    response_model=ValidationResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
async def validate_assignment(
    payload: ValidateAssignmentRequest,
    service: AssignmentService = Depends(get_assignment_service),
) -> ValidationResponse:
    """Run the overallocation check without saving anything."""
    try:
        result = service.validate_assignment(
            person_id=payload.person_id,
            start_date=payload.start_date,
            end_date=payload.end_date,
            allocation=payload.allocation,
            assignment_id=payload.assignment_id,
        )
        return to_validation_response(result)
    except sqlite3.Error as exc:
        logger.exception("Existing assignments could not be loaded for validation")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not validate assignment",
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected assignment validation failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to validate assignment",
        ) from exc


@router.post(
    "/assignments",
    response_model=AssignmentSaveResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_assignment(
    payload: AssignmentCreateRequest,
    service: AssignmentService = Depends(get_assignment_service),
    actor: str = Depends(get_current_actor),
) -> AssignmentSaveResponse:
    try:
        result = service.create_assignment(
            person_id=payload.person_id,
            project_id=payload.project_id,
            start_date=payload.start_date,
            end_date=payload.end_date,
            allocation=payload.allocation,
            is_billable=payload.is_billable,
            allow_overallocation=payload.allow_overallocation,
            actor=actor,
        )
        return _to_save_response(result)
    except AssignmentValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except OverallocationError as exc:
        raise _overallocation_conflict(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected assignment creation failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create assignment",
        ) from exc


@router.get(
    "/assignments/{assignment_id}",
    response_model=AssignmentResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
async def get_assignment(
    assignment_id: str,
    service: AssignmentService = Depends(get_assignment_service),
) -> AssignmentResponse:
    try:
        return to_assignment_response(service.get_assignment(assignment_id))
    except AssignmentNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc


@router.patch(
    "/assignments/{assignment_id}",
    response_model=AssignmentSaveResponse,
    status_code=status.HTTP_200_OK,
)
async def update_assignment(
    assignment_id: str,
    payload: AssignmentUpdateRequest,
    service: AssignmentService = Depends(get_assignment_service),
    actor: str = Depends(get_current_actor),
) -> AssignmentSaveResponse:
    changes = payload.model_dump(exclude_unset=True, exclude={"allow_overallocation"})
    try:
        result = service.update_assignment(
            assignment_id,
            changes,
            allow_overallocation=payload.allow_overallocation,
            actor=actor,
        )
        return _to_save_response(result)
    except AssignmentNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except AssignmentValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except OverallocationError as exc:
        raise _overallocation_conflict(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected assignment update failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update assignment",
        ) from exc


@router.delete(
    "/assignments/{assignment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_assignment(
    assignment_id: str,
    service: AssignmentService = Depends(get_assignment_service),
    actor: str = Depends(get_current_actor),
) -> None:
    try:
        service.delete_assignment(assignment_id, actor=actor)
    except AssignmentNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
