"""Environment-driven application settings."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[2]


def _env_bool(name: str, default: bool) -> bool:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw_value = os.getenv(name)
    if raw_value is None or not raw_value.strip():
        return default
    return int(raw_value)


def _env_float(name: str, default: float) -> float:
    raw_value = os.getenv(name)
    if raw_value is None or not raw_value.strip():
        return default
    return float(raw_value)


@dataclass(frozen=True)
class Settings:
    """Immutable runtime configuration passed explicitly to every layer."""

    app_name: str = "Resource Planner"
    app_version: str = "1.0.0"
    log_level: str = "INFO"

    database_path: Path = field(
        default_factory=lambda: PROJECT_ROOT / "data" / "resource_planner.db"
    )
    database_timeout_seconds: float = 5.0
    seed_demo_data: bool = True

    admin_token: str | None = None
    default_actor: str = "system"

    allocation_tolerance: float = 1e-9
    allocation_override_allowed: bool = True

    fte_days_per_month: float = 30.44
    report_lookback_days: int = 7
    report_lookahead_days: int = 30
    report_max_range_days: int = 366
    activity_log_default_limit: int = 50


def load_settings_from_env() -> Settings:
    """Build settings from environment variables, falling back to defaults."""
    defaults = Settings()
    database_path = os.getenv("DATABASE_PATH")
    return Settings(
        app_name=os.getenv("APP_NAME", defaults.app_name),
        app_version=os.getenv("APP_VERSION", defaults.app_version),
        log_level=os.getenv("LOG_LEVEL", defaults.log_level),
        database_path=Path(database_path) if database_path else defaults.database_path,
        database_timeout_seconds=_env_float(
            "DATABASE_TIMEOUT_SECONDS", defaults.database_timeout_seconds
        ),
        seed_demo_data=_env_bool("SEED_DEMO_DATA", defaults.seed_demo_data),
        admin_token=os.getenv("ADMIN_TOKEN") or None,
        allocation_tolerance=_env_float("ALLOCATION_TOLERANCE", defaults.allocation_tolerance),
        allocation_override_allowed=_env_bool(
            "ALLOCATION_OVERRIDE_ALLOWED", defaults.allocation_override_allowed
        ),
        fte_days_per_month=_env_float("FTE_DAYS_PER_MONTH", defaults.fte_days_per_month),
        report_lookback_days=_env_int("REPORT_LOOKBACK_DAYS", defaults.report_lookback_days),
        report_lookahead_days=_env_int("REPORT_LOOKAHEAD_DAYS", defaults.report_lookahead_days),
        report_max_range_days=_env_int("REPORT_MAX_RANGE_DAYS", defaults.report_max_range_days),
        activity_log_default_limit=_env_int(
            "ACTIVITY_LOG_DEFAULT_LIMIT", defaults.activity_log_default_limit
        ),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return process settings; call ``get_settings.cache_clear()`` to reload."""
    return load_settings_from_env()
