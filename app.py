"""
app.py - FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires the repository and services, registers routers, and runs startup
initialization.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from backend.controllers.assignments_controller import router as assignments_router
from backend.controllers.people_controller import router as people_router
from backend.controllers.projects_controller import router as projects_router
from backend.controllers.reports_controller import router as reports_router
from backend.controllers.session_controller import router as session_router
from backend.repository.data_repository import DataRepository
from backend.services.assignment_service import AssignmentService
from backend.services.auth_service import AuthService
from backend.services.people_service import PeopleService
from backend.services.project_service import ProjectService
from backend.services.report_service import ReportService
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Every service receives the same repository and settings through app.state,
    so the dependency graph is traceable from this function.
    """
    settings = settings or get_settings()

    # --- Repository (single SQLite connection factory) ---
    repository = DataRepository(settings)

    # --- Services ---
    auth_service = AuthService(settings=settings)
    assignment_service = AssignmentService(repository=repository, settings=settings)
    people_service = PeopleService(repository=repository, settings=settings)
    project_service = ProjectService(repository=repository, settings=settings)
    report_service = ReportService(repository=repository, settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run startup initialization before accepting requests."""
        _startup(app)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # --- Routers ---
    app.include_router(session_router)
    app.include_router(people_router)
    app.include_router(projects_router)
    app.include_router(assignments_router)
    app.include_router(reports_router)

    app.state.settings = settings
    app.state.repository = repository
    app.state.auth_service = auth_service
    app.state.assignment_service = assignment_service
    app.state.people_service = people_service
    app.state.project_service = project_service
    app.state.report_service = report_service

    return app


def _startup(app: FastAPI) -> None:
    """
    Idempotent startup sequence. Safe to re-run on server restarts.

    Schema creation runs before the optional demo seed, which only fills an
    empty People table.
    """
    settings: Settings = app.state.settings
    repository: DataRepository = app.state.repository

    logger.info("Startup: initializing database schema")
    repository.initialize_database()

    if settings.seed_demo_data:
        logger.info("Startup: seeding demo roster (skipped if People table not empty)")
        repository.seed_demo_data_if_empty()

    if not app.state.auth_service.auth_enabled:
        logger.warning(
            "ADMIN_TOKEN is not set; write operations are attributed to '%s'",
            settings.default_actor,
        )

    logger.info("Startup complete - system ready")


# Module-level app object for uvicorn
app = create_app()
