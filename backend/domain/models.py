"""Domain models for people, projects, clients and assignments."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional


ALLOCATION_VALUES: tuple[float, ...] = (0.25, 0.5, 0.75, 1.0)

PERSON_STATUSES: tuple[str, ...] = ("Active", "Paused", "Terminated")
ACTIVE_PERSON_STATUSES: tuple[str, ...] = ("Active", "Paused")
PERSON_TYPES: tuple[str, ...] = ("Internal", "External")
PERSON_PROFILES: tuple[str, ...] = (
    "Project Manager",
    "Frontend Developer",
    "Backend Developer",
    "UX Designer",
    "QA",
)

PROJECT_STATUSES: tuple[str, ...] = ("In Progress", "Finished", "On Hold", "Not Started")
CONTRACT_TYPES: tuple[str, ...] = ("Retainer", "FP-FY", "T&M", "Internal")

RESOURCE_TYPES: tuple[str, ...] = ("people", "projects", "clients", "assignments", "session")


@dataclass(frozen=True)
class Client:
    client_id: str
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Person:
    person_id: str
    first_name: str
    last_name: str
    profile: str
    status: str
    person_type: str
    start_date: date
    end_date: Optional[date] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_PERSON_STATUSES


@dataclass(frozen=True)
class Project:
    project_id: str
    name: str
    status: str
    description: Optional[str] = None
    client_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    fte: Optional[float] = None
    contract_type: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class Assignment:
    """A person working on a project for an inclusive range of days."""

    assignment_id: str
    person_id: str
    project_id: str
    start_date: date
    end_date: date
    allocation: float
    is_billable: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def duration_days(self) -> int:
        return (self.end_date - self.start_date).days + 1


@dataclass(frozen=True)
class ActivityLog:
    log_id: int
    actor: str
    action: str
    resource_type: str
    resource_id: str
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class ProjectFteSummary:
    project_id: str
    project_name: str
    required_fte: float
    assigned_fte: float
    utilization_percentage: int
    is_overallocated: bool
    overallocation_percentage: int
