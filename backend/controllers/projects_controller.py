"""HTTP controller layer for projects and clients."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from backend.controllers.dependencies import (
    get_current_actor,
    get_project_service,
    require_admin,
)
from backend.domain.models import Client, Project, ProjectFteSummary
from backend.services.project_service import (
    ClientNotFoundError,
    ProjectNotFoundError,
    ProjectService,
    ProjectValidationError,
)
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["projects"])


class ClientResponse(BaseModel):
    id: str
    name: str
    description: str | None = None
    created_at: datetime | None = None


class ClientCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None


class ClientUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None


class ProjectResponse(BaseModel):
    id: str
    name: str
    status: str
    description: str | None = None
    client_id: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    fte: float | None = None
    contract_type: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProjectCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    status: str = "Not Started"
    description: Optional[str] = None
    client_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    fte: Optional[float] = Field(default=None, ge=0.0)
    contract_type: Optional[str] = None


class ProjectUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    status: Optional[str] = None
    description: Optional[str] = None
    client_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    fte: Optional[float] = Field(default=None, ge=0.0)
    contract_type: Optional[str] = None


class ProjectFteResponse(BaseModel):
    project_id: str
    project_name: str
    required_fte: float = Field(ge=0.0)
    assigned_fte: float = Field(ge=0.0)
    utilization_percentage: int = Field(ge=0)
    is_overallocated: bool
    overallocation_percentage: int = Field(ge=0)


def to_client_response(client: Client) -> ClientResponse:
    return ClientResponse(
        id=client.client_id,
        name=client.name,
        description=client.description,
        created_at=client.created_at,
    )


def to_project_response(project: Project) -> ProjectResponse:
    return ProjectResponse(
        id=project.project_id,
        name=project.name,
        status=project.status,
        description=project.description,
        client_id=project.client_id,
        start_date=project.start_date,
        end_date=project.end_date,
        fte=project.fte,
        contract_type=project.contract_type,
        created_at=project.created_at,
        updated_at=project.updated_at,
    )


def to_fte_response(summary: ProjectFteSummary) -> ProjectFteResponse:
    return ProjectFteResponse(
        project_id=summary.project_id,
        project_name=summary.project_name,
        required_fte=summary.required_fte,
        assigned_fte=round(summary.assigned_fte, 4),
        utilization_percentage=summary.utilization_percentage,
        is_overallocated=summary.is_overallocated,
        overallocation_percentage=summary.overallocation_percentage,
    )


# --- Clients ---


@router.get(
    "/clients",
    response_model=list[ClientResponse],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
async def list_clients(
    service: ProjectService = Depends(get_project_service),
) -> list[ClientResponse]:
    return [to_client_response(client) for client in service.list_clients()]


@router.post(
    "/clients",
    response_model=ClientResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_client(
    payload: ClientCreateRequest,
    service: ProjectService = Depends(get_project_service),
    actor: str = Depends(get_current_actor),
) -> ClientResponse:
    try:
        client = service.create_client(**payload.model_dump(), actor=actor)
        return to_client_response(client)
    except ProjectValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc


@router.get(
    "/clients/{client_id}",
    response_model=ClientResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
async def get_client(
    client_id: str,
    service: ProjectService = Depends(get_project_service),
) -> ClientResponse:
    try:
        return to_client_response(service.get_client(client_id))
    except ClientNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc


@router.patch(
    "/clients/{client_id}",
    response_model=ClientResponse,
    status_code=status.HTTP_200_OK,
)
async def update_client(
    client_id: str,
    payload: ClientUpdateRequest,
    service: ProjectService = Depends(get_project_service),
    actor: str = Depends(get_current_actor),
) -> ClientResponse:
    try:
        client = service.update_client(
            client_id,
            payload.model_dump(exclude_unset=True),
            actor=actor,
        )
        return to_client_response(client)
    except ClientNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except ProjectValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc


@router.delete(
    "/clients/{client_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_client(
    client_id: str,
    service: ProjectService = Depends(get_project_service),
    actor: str = Depends(get_current_actor),
) -> None:
    try:
        service.delete_client(client_id, actor=actor)
    except ClientNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc


# --- Projects ---


@router.get(
    "/projects",
    response_model=list[ProjectResponse],
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
async def list_projects(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    client_id: Optional[str] = Query(default=None),
    service: ProjectService = Depends(get_project_service),
) -> list[ProjectResponse]:
    projects = service.list_projects(status=status_filter, client_id=client_id)
    return [to_project_response(project) for project in projects]


@router.post(
    "/projects",
    response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_project(
    payload: ProjectCreateRequest,
    service: ProjectService = Depends(get_project_service),
    actor: str = Depends(get_current_actor),
) -> ProjectResponse:
    try:
        project = service.create_project(**payload.model_dump(), actor=actor)
        return to_project_response(project)
    except ProjectValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected project creation failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create project",
        ) from exc


@router.get(
    "/projects/{project_id}",
    response_model=ProjectResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
async def get_project(
    project_id: str,
    service: ProjectService = Depends(get_project_service),
) -> ProjectResponse:
    try:
        return to_project_response(service.get_project(project_id))
    except ProjectNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc


@router.get(
    "/projects/{project_id}/fte",
    response_model=ProjectFteResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
)
async def get_project_fte(
    project_id: str,
    service: ProjectService = Depends(get_project_service),
) -> ProjectFteResponse:
    try:
        return to_fte_response(service.get_project_fte_summary(project_id))
    except ProjectNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc


@router.patch(
    "/projects/{project_id}",
    response_model=ProjectResponse,
    status_code=status.HTTP_200_OK,
)
async def update_project(
    project_id: str,
    payload: ProjectUpdateRequest,
    service: ProjectService = Depends(get_project_service),
    actor: str = Depends(get_current_actor),
) -> ProjectResponse:
    try:
        project = service.update_project(
            project_id,
            payload.model_dump(exclude_unset=True),
            actor=actor,
        )
        return to_project_response(project)
    except ProjectNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except ProjectValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected project update failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update project",
        ) from exc


@router.delete(
    "/projects/{project_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_project(
    project_id: str,
    service: ProjectService = Depends(get_project_service),
    actor: str = Depends(get_current_actor),
) -> None:
    try:
        service.delete_project(project_id, actor=actor)
    except ProjectNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
