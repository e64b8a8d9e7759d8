"""Read-only reporting: occupation, workload timeline and activity feed."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

import pandas as pd

from backend.domain.allocation_validator import FULL_CAPACITY
from backend.domain.models import RESOURCE_TYPES, ActivityLog, Person
from backend.repository.data_repository import DataRepository
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


class ReportValidationError(Exception):
    """Raised when report parameters are invalid."""


class ReportService:
    """Aggregates assignments into per-person and per-day views."""

    _DAY_COLUMNS = ["person_id", "day", "allocation"]

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    def resolve_window(
        self,
        start_date: Optional[date],
        end_date: Optional[date],
        today: Optional[date] = None,
    ) -> tuple[date, date]:
        """Fill missing bounds around today and enforce the maximum span."""
        anchor = today or datetime.now(timezone.utc).date()
        start = start_date or anchor - timedelta(days=self._settings.report_lookback_days)
        end = end_date or anchor + timedelta(days=self._settings.report_lookahead_days)
        if start > end:
            raise ReportValidationError("start_date must be on or before end_date")
        span_days = (end - start).days + 1
        if span_days > self._settings.report_max_range_days:
            raise ReportValidationError(
                f"Report window spans {span_days} days; "
                f"maximum is {self._settings.report_max_range_days}"
            )
        return start, end

    def occupation_report(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        *,
        project_id: Optional[str] = None,
    ) -> dict[str, Any]:
        """One row per assignment overlapping the window."""
        start, end = self.resolve_window(start_date, end_date)
        rows = []
        for detail in self._repository.list_assignment_details(start, end, project_id=project_id):
            overlap_days = (min(detail.end_date, end) - max(detail.start_date, start)).days + 1
            rows.append(
                {
                    "assignment_id": detail.assignment_id,
                    "person_id": detail.person_id,
                    "person_name": f"{detail.person_first_name} {detail.person_last_name}",
                    "person_profile": detail.person_profile,
                    "person_status": detail.person_status,
                    "project_id": detail.project_id,
                    "project_name": detail.project_name,
                    "project_status": detail.project_status,
                    "start_date": detail.start_date,
                    "end_date": detail.end_date,
                    "allocation": detail.allocation,
                    "is_billable": detail.is_billable,
                    "days_in_window": overlap_days,
                    "allocated_days": round(detail.allocation * overlap_days, 4),
                }
            )
        return {"start_date": start, "end_date": end, "rows": rows}

    def _build_daily_frame(
        self,
        people: list[Person],
        start: date,
        end: date,
    ) -> pd.DataFrame:
        """Return one row per (person, day) with the summed allocation."""
        person_ids = [person.person_id for person in people]
        records: list[tuple[str, pd.Timestamp, float]] = []
        if person_ids:
            wanted = set(person_ids)
            for assignment in self._repository.list_assignments(start_date=start, end_date=end):
                if assignment.person_id not in wanted:
                    continue
                days = pd.date_range(
                    max(assignment.start_date, start),
                    min(assignment.end_date, end),
                    freq="D",
                )
                records.extend(
                    (assignment.person_id, day, float(assignment.allocation)) for day in days
                )

        frame = pd.DataFrame.from_records(records, columns=self._DAY_COLUMNS).astype(
            {"allocation": float}
        )
        totals = frame.groupby(["person_id", "day"])["allocation"].sum()
        grid = pd.MultiIndex.from_product(
            [person_ids, pd.date_range(start, end, freq="D")],
            names=["person_id", "day"],
        )
        daily = totals.reindex(grid, fill_value=0.0).rename("total_allocation").reset_index()
        daily["total_allocation"] = daily["total_allocation"].astype(float)
        threshold = FULL_CAPACITY + self._settings.allocation_tolerance
        daily["is_overallocated"] = daily["total_allocation"] > threshold
        return daily

    def workload_timeline(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        *,
        profile: Optional[str] = None,
        person_type: Optional[str] = None,
        search: Optional[str] = None,
        overallocated_only: bool = False,
    ) -> dict[str, Any]:
        """Per-person daily allocation over the window for active people."""
        start, end = self.resolve_window(start_date, end_date)
        people = [
            person
            for person in self._repository.list_people(
                person_type=person_type,
                profile=profile,
                search=search,
            )
            if person.is_active
        ]
        daily = self._build_daily_frame(people, start, end)
        summary = daily.groupby("person_id").agg(
            average_allocation=("total_allocation", "mean"),
            peak_allocation=("total_allocation", "max"),
            overallocated_days=("is_overallocated", "sum"),
        )

        timeline = []
        for person in people:
            person_days = daily[daily["person_id"] == person.person_id]
            stats = summary.loc[person.person_id]
            overallocated_days = int(stats["overallocated_days"])
            if overallocated_only and overallocated_days == 0:
                continue
            timeline.append(
                {
                    "person_id": person.person_id,
                    "name": person.display_name,
                    "profile": person.profile,
                    "person_type": person.person_type,
                    "average_allocation": round(float(stats["average_allocation"]), 4),
                    "peak_allocation": round(float(stats["peak_allocation"]), 4),
                    "overallocated_days": overallocated_days,
                    "days": [
                        {
                            "date": row.day.date(),
                            "total_allocation": round(float(row.total_allocation), 4),
                            "is_overallocated": bool(row.is_overallocated),
                        }
                        for row in person_days.itertuples(index=False)
                    ],
                }
            )
        logger.info(
            "Workload timeline %s to %s: %s people, %s overallocated",
            start,
            end,
            len(timeline),
            sum(1 for entry in timeline if entry["overallocated_days"]),
        )
        return {"start_date": start, "end_date": end, "people": timeline}

    def recent_activity(
        self,
        *,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[ActivityLog]:
        resolved_limit = limit if limit is not None else self._settings.activity_log_default_limit
        if resolved_limit <= 0:
            raise ReportValidationError("limit must be > 0")
        if resource_type is not None and resource_type not in RESOURCE_TYPES:
            raise ReportValidationError(
                f"resource_type must be one of: {', '.join(RESOURCE_TYPES)}"
            )
        return self._repository.list_activity_logs(
            resource_type=resource_type,
            resource_id=resource_id,
            limit=resolved_limit,
        )
