"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from backend.repository.data_repository import DataRepository
from backend.services.assignment_service import AssignmentService
from backend.services.auth_service import (
    AdminTokenNotConfiguredError,
    AuthService,
    InvalidAdminTokenError,
)
from backend.services.people_service import PeopleService
from backend.services.project_service import ProjectService
from backend.services.report_service import ReportService
from backend.utils.config import Settings, get_settings


bearer_scheme = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def get_repository(request: Request) -> DataRepository:
    repository = getattr(request.app.state, "repository", None)
    if repository is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Repository is not initialized",
        )
    return repository


def get_auth_service(request: Request) -> AuthService:
    service = getattr(request.app.state, "auth_service", None)
    if service is None:
        service = AuthService(settings=get_app_settings(request))
        request.app.state.auth_service = service
    return service


def get_assignment_service(request: Request) -> AssignmentService:
    service = getattr(request.app.state, "assignment_service", None)
    if service is None:
        service = AssignmentService(
            repository=get_repository(request),
            settings=get_app_settings(request),
        )
        request.app.state.assignment_service = service
    return service


def get_people_service(request: Request) -> PeopleService:
    service = getattr(request.app.state, "people_service", None)
    if service is None:
        service = PeopleService(
            repository=get_repository(request),
            settings=get_app_settings(request),
        )
        request.app.state.people_service = service
    return service


def get_project_service(request: Request) -> ProjectService:
    service = getattr(request.app.state, "project_service", None)
    if service is None:
        service = ProjectService(
            repository=get_repository(request),
            settings=get_app_settings(request),
        )
        request.app.state.project_service = service
    return service


def get_report_service(request: Request) -> ReportService:
    service = getattr(request.app.state, "report_service", None)
    if service is None:
        service = ReportService(
            repository=get_repository(request),
            settings=get_app_settings(request),
        )
        request.app.state.report_service = service
    return service


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> str:
    """Resolve the operator behind the bearer token (default actor when auth is off)."""
    if not auth_service.auth_enabled:
        return auth_service.anonymous_actor
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header with Bearer token is required",
        )
    try:
        return auth_service.resolve_actor(credentials.credentials)
    except (AdminTokenNotConfiguredError, InvalidAdminTokenError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc


async def require_admin(_: str = Depends(get_current_actor)) -> None:
    return None
