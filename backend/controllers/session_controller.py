"""Controller layer for operator sessions and liveness."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import BaseModel, Field

from backend.controllers.dependencies import (
    bearer_scheme,
    get_app_settings,
    get_auth_service,
    get_repository,
)
from backend.repository.data_repository import DataRepository
from backend.services.auth_service import (
    AdminTokenNotConfiguredError,
    AuthService,
    InvalidAdminTokenError,
)
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["session"])


class LoginRequest(BaseModel):
    admin_token: str = Field(min_length=1)
    display_name: Optional[str] = Field(default=None, max_length=120)


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    display_name: str


class HealthResponse(BaseModel):
    status: str
    app_name: str
    version: str


@router.get("/health", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def health(request: Request) -> HealthResponse:
    settings = get_app_settings(request)
    return HealthResponse(status="ok", app_name=settings.app_name, version=settings.app_version)


@router.post("/login", response_model=LoginResponse, status_code=status.HTTP_200_OK)
async def login(
    payload: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
    repository: DataRepository = Depends(get_repository),
) -> LoginResponse:
    try:
        bearer = auth_service.login(payload.admin_token, payload.display_name)
        actor = auth_service.resolve_actor(bearer)
        repository.log_activity(
            actor=actor,
            action="login",
            resource_type="session",
            resource_id=actor,
        )
        return LoginResponse(access_token=bearer, display_name=actor)
    except (AdminTokenNotConfiguredError, InvalidAdminTokenError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected login failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to login",
        ) from exc


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> None:
    if credentials is not None:
        auth_service.logout(credentials.credentials)
