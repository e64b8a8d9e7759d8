"""Assignment lifecycle with overallocation checks on every write."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from typing import Any, Mapping, Optional

from backend.domain.allocation_validator import (
    AllocationCandidate,
    InvalidAllocation,
    ValidationResult,
    check_candidate,
    validate_allocation,
)
from backend.domain.constraints import validate_assignment_fields
from backend.domain.models import Assignment
from backend.repository.data_repository import DataRepository, new_id
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)

_UPDATABLE_FIELDS = frozenset(
    {"person_id", "project_id", "start_date", "end_date", "allocation", "is_billable"}
)


class AssignmentValidationError(Exception):
    """Raised when assignment inputs break field rules."""


class AssignmentNotFoundError(Exception):
    """Raised when an assignment id does not exist."""


class OverallocationError(Exception):
    """Raised when a save would push a person above full capacity."""

    def __init__(self, result: ValidationResult) -> None:
        super().__init__(
            f"Assignment exceeds capacity on {len(result.overallocated_days)} day(s); "
            f"peak allocation {result.total_allocation:.2f}"
        )
        self.result = result


@dataclass(frozen=True)
class AssignmentSaveResult:
    assignment: Assignment
    validation: ValidationResult


class AssignmentService:
    """Validates, persists and audits assignments."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    def list_assignments(
        self,
        *,
        person_id: Optional[str] = None,
        project_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[Assignment]:
        if start_date is not None and end_date is not None and start_date > end_date:
            raise AssignmentValidationError("start_date must be on or before end_date")
        return self._repository.list_assignments(
            person_id=person_id,
            project_id=project_id,
            start_date=start_date,
            end_date=end_date,
        )

    def get_assignment(self, assignment_id: str) -> Assignment:
        assignment = self._repository.get_assignment(assignment_id)
        if assignment is None:
            raise AssignmentNotFoundError(f"Assignment {assignment_id} not found")
        return assignment

    def validate_assignment(
        self,
        *,
        person_id: Optional[str],
        start_date: Optional[date],
        end_date: Optional[date],
        allocation: Optional[float],
        assignment_id: Optional[str] = None,
    ) -> ValidationResult:
        """Check a prospective assignment against the person's stored ones.

        Malformed candidates come back as ``InvalidAllocation`` before any
        storage access. Storage errors while reading existing assignments
        propagate unchanged.
        """
        candidate = AllocationCandidate(
            person_id=person_id,
            start_date=start_date,
            end_date=end_date,
            allocation=allocation,
            assignment_id=assignment_id,
        )
        invalid = check_candidate(candidate)
        if invalid is not None:
            return invalid

        existing = self._repository.list_assignments_for_person(person_id)
        result = validate_allocation(candidate, existing, self._settings.allocation_tolerance)
        logger.info(
            "Validated assignment for person %s (%s to %s at %.2f): %s",
            person_id,
            start_date,
            end_date,
            allocation,
            result.status,
        )
        return result

    def create_assignment(
        self,
        *,
        person_id: str,
        project_id: str,
        start_date: date,
        end_date: date,
        allocation: float,
        is_billable: bool = True,
        allow_overallocation: bool = False,
        actor: Optional[str] = None,
    ) -> AssignmentSaveResult:
        assignment = Assignment(
            assignment_id=new_id(),
            person_id=person_id,
            project_id=project_id,
            start_date=start_date,
            end_date=end_date,
            allocation=allocation,
            is_billable=is_billable,
        )
        result = self._save(assignment, allow_overallocation=allow_overallocation)
        self._repository.log_activity(
            actor=actor or self._settings.default_actor,
            action="create",
            resource_type="assignments",
            resource_id=result.assignment.assignment_id,
            metadata=self._audit_metadata(result),
        )
        return result

    def update_assignment(
        self,
        assignment_id: str,
        changes: Mapping[str, Any],
        *,
        allow_overallocation: bool = False,
        actor: Optional[str] = None,
    ) -> AssignmentSaveResult:
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise AssignmentValidationError(
                f"Unsupported assignment fields: {', '.join(sorted(unknown))}"
            )
        current = self.get_assignment(assignment_id)
        updated = replace(current, **dict(changes))
        result = self._save(updated, allow_overallocation=allow_overallocation)
        self._repository.log_activity(
            actor=actor or self._settings.default_actor,
            action="update",
            resource_type="assignments",
            resource_id=assignment_id,
            metadata={"changes": sorted(changes), **self._audit_metadata(result)},
        )
        return result

    def delete_assignment(self, assignment_id: str, *, actor: Optional[str] = None) -> None:
        if not self._repository.delete_assignment(assignment_id):
            raise AssignmentNotFoundError(f"Assignment {assignment_id} not found")
        self._repository.log_activity(
            actor=actor or self._settings.default_actor,
            action="delete",
            resource_type="assignments",
            resource_id=assignment_id,
        )

    def _check_references(self, assignment: Assignment) -> None:
        if self._repository.get_person(assignment.person_id) is None:
            raise AssignmentValidationError(f"Person {assignment.person_id} does not exist")
        if self._repository.get_project(assignment.project_id) is None:
            raise AssignmentValidationError(f"Project {assignment.project_id} does not exist")

    def _save(self, assignment: Assignment, *, allow_overallocation: bool) -> AssignmentSaveResult:
        try:
            validate_assignment_fields(
                person_id=assignment.person_id,
                project_id=assignment.project_id,
                start_date=assignment.start_date,
                end_date=assignment.end_date,
                allocation=assignment.allocation,
            )
        except ValueError as exc:
            raise AssignmentValidationError(str(exc)) from exc
        self._check_references(assignment)

        override = allow_overallocation and self._settings.allocation_override_allowed
        candidate = AllocationCandidate(
            person_id=assignment.person_id,
            start_date=assignment.start_date,
            end_date=assignment.end_date,
            allocation=assignment.allocation,
            assignment_id=assignment.assignment_id,
        )
        outcome: list[ValidationResult] = []

        def guard(existing: list[Assignment]) -> None:
            result = validate_allocation(candidate, existing, self._settings.allocation_tolerance)
            outcome.append(result)
            if isinstance(result, InvalidAllocation):
                raise AssignmentValidationError(result.reason)
            if result.is_overallocated and not override:
                raise OverallocationError(result)

        stored = self._repository.save_assignment(assignment, guard=guard)
        validation = outcome[-1]
        if validation.is_overallocated:
            logger.warning(
                "Assignment %s saved with overallocation override (peak %.2f)",
                stored.assignment_id,
                validation.total_allocation,
            )
        return AssignmentSaveResult(assignment=stored, validation=validation)

    @staticmethod
    def _audit_metadata(result: AssignmentSaveResult) -> dict[str, Any]:
        assignment = result.assignment
        return {
            "person_id": assignment.person_id,
            "project_id": assignment.project_id,
            "start_date": assignment.start_date.isoformat(),
            "end_date": assignment.end_date.isoformat(),
            "allocation": assignment.allocation,
            "overallocated": result.validation.is_overallocated,
        }
