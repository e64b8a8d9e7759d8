#!/usr/bin/env python3
"""Validate local resource planner environment readiness."""

from __future__ import annotations

import importlib
import shutil
import sys
import tempfile
from dataclasses import replace
from datetime import date
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.domain.allocation_validator import AllocationCandidate, validate_allocation
from backend.repository.data_repository import DataRepository
from backend.services.report_service import ReportService
from backend.utils.config import get_settings

SEPARATOR_LINE = "=" * 44


def _print_result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


def main() -> int:
    results: list[str] = []
    all_passed = True
    temp_dir = tempfile.mkdtemp(prefix="resource-planner-env-")

    # CHECK 1 - Python version >= 3.10
    if sys.version_info >= (3, 10):
        ok, line = _print_result("Python " + sys.version.split()[0], True)
    else:
        ok, line = _print_result(
            "Python version >= 3.10",
            False,
            f"found {sys.version.split()[0]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 2 - Required packages importable
    package_specs = [
        ("fastapi", "fastapi"),
        ("uvicorn", "uvicorn"),
        ("pydantic", "pydantic"),
        ("pandas", "pandas"),
        ("requests", "requests"),
        ("streamlit", "streamlit"),
        ("httpx", "httpx"),
        ("pytest", "pytest"),
    ]
    import_errors: list[str] = []
    for module_name, dist_name in package_specs:
        try:
            importlib.import_module(module_name)
            version(dist_name)
        except (ImportError, PackageNotFoundError) as exc:
            import_errors.append(f"{module_name} ({exc})")
    if import_errors:
        ok, line = _print_result(
            "Required packages",
            False,
            "missing/unimportable -> " + "; ".join(import_errors),
        )
    else:
        ok, line = _print_result("Required packages: all importable", True)
    results.append(line)
    all_passed = all_passed and ok

    try:
        validation_settings = replace(
            get_settings(),
            database_path=Path(temp_dir) / "resource_planner_validation.db",
        )
        repository = DataRepository(validation_settings)

        # CHECK 3 - Database initialization
        try:
            repository.initialize_database()
            ok, line = _print_result("Database initialization", True)
        except Exception as exc:
            ok, line = _print_result("Database initialization", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 4 - Demo roster seeding
        try:
            seeded = repository.seed_demo_data_if_empty()
            if seeded <= 0:
                raise RuntimeError("no assignments were seeded")
            ok, line = _print_result("Demo roster seeding", True, f": {seeded} assignments")
        except Exception as exc:
            ok, line = _print_result("Demo roster seeding", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 5 - Overallocation check on a known conflict
        try:
            existing = [
                AllocationCandidate(
                    person_id="p1",
                    start_date=date(2024, 1, 1),
                    end_date=date(2024, 1, 10),
                    allocation=0.5,
                    assignment_id="a1",
                )
            ]
            result = validate_allocation(
                AllocationCandidate(
                    person_id="p1",
                    start_date=date(2024, 1, 5),
                    end_date=date(2024, 1, 7),
                    allocation=0.75,
                ),
                existing,
            )
            if len(result.overallocated_days) != 3:
                raise RuntimeError(f"expected 3 flagged days, got {len(result.overallocated_days)}")
            ok, line = _print_result(
                "Overallocation check",
                True,
                f": peak={result.total_allocation:.2f}",
            )
        except Exception as exc:
            ok, line = _print_result("Overallocation check", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 6 - Workload report over the seeded roster
        try:
            timeline = ReportService(repository=repository, settings=validation_settings)
            report = timeline.workload_timeline()
            ok, line = _print_result(
                "Workload report",
                True,
                f": {len(report['people'])} people",
            )
        except Exception as exc:
            ok, line = _print_result("Workload report", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    print(SEPARATOR_LINE)
    print(" Resource Planner Environment Validation")
    print(SEPARATOR_LINE)
    for line in results:
        print(f" {line}")
    print(SEPARATOR_LINE)
    if all_passed:
        print(" All checks passed. Environment is ready.")
        print(SEPARATOR_LINE)
        return 0
    print(" One or more checks failed.")
    print(SEPARATOR_LINE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
