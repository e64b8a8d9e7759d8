"""HTTP controller layer for read-only reports and the activity feed."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from backend.controllers.dependencies import (
    get_project_service,
    get_report_service,
    require_admin,
)
from backend.controllers.projects_controller import ProjectFteResponse, to_fte_response
from backend.services.project_service import ProjectService
from backend.services.report_service import ReportService, ReportValidationError
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["reports"], dependencies=[Depends(require_admin)])


class OccupationRowResponse(BaseModel):
    assignment_id: str
    person_id: str
    person_name: str
    person_profile: str
    person_status: str
    project_id: str
    project_name: str
    project_status: str
    start_date: date
    end_date: date
    allocation: float = Field(ge=0.0, le=1.0)
    is_billable: bool
    days_in_window: int = Field(ge=1)
    allocated_days: float = Field(ge=0.0)


class OccupationReportResponse(BaseModel):
    start_date: date
    end_date: date
    rows: list[OccupationRowResponse]


class WorkloadDayResponse(BaseModel):
    date: date
    total_allocation: float = Field(ge=0.0)
    is_overallocated: bool


class PersonWorkloadResponse(BaseModel):
    person_id: str
    name: str
    profile: str
    person_type: str
    average_allocation: float = Field(ge=0.0)
    peak_allocation: float = Field(ge=0.0)
    overallocated_days: int = Field(ge=0)
    days: list[WorkloadDayResponse]


class WorkloadTimelineResponse(BaseModel):
    start_date: date
    end_date: date
    people: list[PersonWorkloadResponse]


class ActivityLogResponse(BaseModel):
    id: int
    actor: str
    action: str
    resource_type: str
    resource_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None


@router.get(
    "/reports/occupation",
    response_model=OccupationReportResponse,
    status_code=status.HTTP_200_OK,
)
async def occupation_report(
    start_date: Optional[date] = Query(default=None),
    end_date: Optional[date] = Query(default=None),
    project_id: Optional[str] = Query(default=None),
    service: ReportService = Depends(get_report_service),
) -> OccupationReportResponse:
    try:
        report = service.occupation_report(start_date, end_date, project_id=project_id)
        return OccupationReportResponse(**report)
    except ReportValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected occupation report failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to build occupation report",
        ) from exc


@router.get(
    "/reports/workload",
    response_model=WorkloadTimelineResponse,
    status_code=status.HTTP_200_OK,
)
async def workload_report(
    start_date: Optional[date] = Query(default=None),
    end_date: Optional[date] = Query(default=None),
    profile: Optional[str] = Query(default=None),
    person_type: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None, max_length=120),
    overallocated_only: bool = Query(default=False),
    service: ReportService = Depends(get_report_service),
) -> WorkloadTimelineResponse:
    try:
        timeline = service.workload_timeline(
            start_date,
            end_date,
            profile=profile,
            person_type=person_type,
            search=search,
            overallocated_only=overallocated_only,
        )
        return WorkloadTimelineResponse(**timeline)
    except ReportValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected workload report failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to build workload report",
        ) from exc


@router.get(
    "/reports/overallocated_projects",
    response_model=list[ProjectFteResponse],
    status_code=status.HTTP_200_OK,
)
async def overallocated_projects(
    service: ProjectService = Depends(get_project_service),
) -> list[ProjectFteResponse]:
    return [to_fte_response(summary) for summary in service.list_overallocated_projects()]


@router.get(
    "/activity_logs",
    response_model=list[ActivityLogResponse],
    status_code=status.HTTP_200_OK,
)
async def activity_logs(
    resource_type: Optional[str] = Query(default=None),
    resource_id: Optional[str] = Query(default=None),
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    service: ReportService = Depends(get_report_service),
) -> list[ActivityLogResponse]:
    try:
        entries = service.recent_activity(
            resource_type=resource_type,
            resource_id=resource_id,
            limit=limit,
        )
    except ReportValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return [
        ActivityLogResponse(
            id=entry.log_id,
            actor=entry.actor,
            action=entry.action,
            resource_type=entry.resource_type,
            resource_id=entry.resource_id,
            metadata=entry.metadata,
            created_at=entry.created_at,
        )
        for entry in entries
    ]
