"""Project and client management plus FTE utilization summaries."""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Any, Iterable, Mapping, Optional

from backend.domain.constraints import validate_client_fields, validate_project_fields
from backend.domain.models import Assignment, Client, Project, ProjectFteSummary
from backend.repository.data_repository import DataRepository, new_id
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)

_PROJECT_FIELDS = frozenset(
    {
        "name",
        "description",
        "client_id",
        "status",
        "start_date",
        "end_date",
        "fte",
        "contract_type",
    }
)
_CLIENT_FIELDS = frozenset({"name", "description"})


class ProjectValidationError(Exception):
    """Raised when project or client inputs break field rules."""


class ProjectNotFoundError(Exception):
    """Raised when a project id does not exist."""


class ClientNotFoundError(Exception):
    """Raised when a client id does not exist."""


def _strip_name(changes: Mapping[str, Any]) -> dict[str, Any]:
    cleaned = dict(changes)
    if isinstance(cleaned.get("name"), str):
        cleaned["name"] = cleaned["name"].strip()
    return cleaned


def assigned_fte_months(assignments: Iterable[Assignment], days_per_month: float) -> float:
    """Sum allocation-weighted assignment durations expressed in FTE-months."""
    return sum(
        assignment.allocation * assignment.duration_days / days_per_month
        for assignment in assignments
    )


def build_fte_summary(
    project: Project,
    assigned_fte: float,
) -> ProjectFteSummary:
    required = float(project.fte or 0.0)
    if required > 0.0:
        utilization = round(assigned_fte / required * 100)
    else:
        utilization = 0
    is_overallocated = required > 0.0 and assigned_fte > required
    overallocation = round((assigned_fte - required) / required * 100) if is_overallocated else 0
    return ProjectFteSummary(
        project_id=project.project_id,
        project_name=project.name,
        required_fte=required,
        assigned_fte=assigned_fte,
        utilization_percentage=utilization,
        is_overallocated=is_overallocated,
        overallocation_percentage=overallocation,
    )


class ProjectService:
    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    # --- Clients ---

    def list_clients(self) -> list[Client]:
        return self._repository.list_clients()

    def get_client(self, client_id: str) -> Client:
        client = self._repository.get_client(client_id)
        if client is None:
            raise ClientNotFoundError(f"Client {client_id} not found")
        return client

    def create_client(
        self,
        *,
        name: str,
        description: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> Client:
        client = Client(client_id=new_id(), name=(name or "").strip(), description=description)
        self._validate_client(client)
        stored = self._repository.insert_client(client)
        self._audit(actor, "create", "clients", stored.client_id, {"name": stored.name})
        return stored

    def update_client(
        self,
        client_id: str,
        changes: Mapping[str, Any],
        *,
        actor: Optional[str] = None,
    ) -> Client:
        unknown = set(changes) - _CLIENT_FIELDS
        if unknown:
            raise ProjectValidationError(f"Unsupported client fields: {', '.join(sorted(unknown))}")
        updated = replace(self.get_client(client_id), **_strip_name(changes))
        self._validate_client(updated)
        stored = self._repository.update_client(updated)
        self._audit(actor, "update", "clients", client_id, {"changes": sorted(changes)})
        return stored

    def delete_client(self, client_id: str, *, actor: Optional[str] = None) -> None:
        if not self._repository.delete_client(client_id):
            raise ClientNotFoundError(f"Client {client_id} not found")
        self._audit(actor, "delete", "clients", client_id, None)

    # --- Projects ---

    def list_projects(
        self,
        *,
        status: Optional[str] = None,
        client_id: Optional[str] = None,
    ) -> list[Project]:
        return self._repository.list_projects(status=status, client_id=client_id)

    def get_project(self, project_id: str) -> Project:
        project = self._repository.get_project(project_id)
        if project is None:
            raise ProjectNotFoundError(f"Project {project_id} not found")
        return project

    def create_project(
        self,
        *,
        name: str,
        status: str = "Not Started",
        description: Optional[str] = None,
        client_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        fte: Optional[float] = None,
        contract_type: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> Project:
        project = Project(
            project_id=new_id(),
            name=(name or "").strip(),
            status=status,
            description=description,
            client_id=client_id,
            start_date=start_date,
            end_date=end_date,
            fte=fte,
            contract_type=contract_type,
        )
        self._validate_project(project)
        stored = self._repository.insert_project(project)
        self._audit(actor, "create", "projects", stored.project_id, {"name": stored.name})
        logger.info("Created project %s (%s)", stored.project_id, stored.name)
        return stored

    def update_project(
        self,
        project_id: str,
        changes: Mapping[str, Any],
        *,
        actor: Optional[str] = None,
    ) -> Project:
        unknown = set(changes) - _PROJECT_FIELDS
        if unknown:
            raise ProjectValidationError(
                f"Unsupported project fields: {', '.join(sorted(unknown))}"
            )
        updated = replace(self.get_project(project_id), **_strip_name(changes))
        self._validate_project(updated)
        stored = self._repository.update_project(updated)
        self._audit(actor, "update", "projects", project_id, {"changes": sorted(changes)})
        return stored

    def delete_project(self, project_id: str, *, actor: Optional[str] = None) -> None:
        """Delete a project; its assignments are removed with it."""
        if not self._repository.delete_project(project_id):
            raise ProjectNotFoundError(f"Project {project_id} not found")
        self._audit(actor, "delete", "projects", project_id, None)

    # --- FTE ---

    def get_project_fte_summary(
        self,
        project_id: str,
        today: Optional[date] = None,
    ) -> ProjectFteSummary:
        """Compare FTE-months still assigned (ending today or later) to the project's FTE."""
        project = self.get_project(project_id)
        reference_day = today or datetime.now(timezone.utc).date()
        active = [
            assignment
            for assignment in self._repository.list_assignments(project_id=project_id)
            if assignment.end_date >= reference_day
        ]
        assigned = assigned_fte_months(active, self._settings.fte_days_per_month)
        return build_fte_summary(project, assigned)

    def list_overallocated_projects(self, today: Optional[date] = None) -> list[ProjectFteSummary]:
        summaries = [
            self.get_project_fte_summary(project.project_id, today=today)
            for project in self._repository.list_projects()
            if project.fte
        ]
        return sorted(
            (summary for summary in summaries if summary.is_overallocated),
            key=lambda summary: summary.overallocation_percentage,
            reverse=True,
        )

    def _validate_project(self, project: Project) -> None:
        try:
            validate_project_fields(
                name=project.name,
                status=project.status,
                start_date=project.start_date,
                end_date=project.end_date,
                fte=project.fte,
                contract_type=project.contract_type,
            )
        except ValueError as exc:
            raise ProjectValidationError(str(exc)) from exc
        if project.client_id and self._repository.get_client(project.client_id) is None:
            raise ProjectValidationError(f"Client {project.client_id} does not exist")

    def _validate_client(self, client: Client) -> None:
        try:
            validate_client_fields(name=client.name)
        except ValueError as exc:
            raise ProjectValidationError(str(exc)) from exc
        existing = self._repository.get_client_by_name(client.name)
        if existing is not None and existing.client_id != client.client_id:
            raise ProjectValidationError(f"Client name '{client.name}' is already in use")

    def _audit(
        self,
        actor: Optional[str],
        action: str,
        resource_type: str,
        resource_id: str,
        metadata: Optional[dict[str, Any]],
    ) -> None:
        self._repository.log_activity(
            actor=actor or self._settings.default_actor,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            metadata=metadata,
        )
