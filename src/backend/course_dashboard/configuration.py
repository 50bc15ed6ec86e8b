"""
Environment-driven configuration for the course dashboard.
"""

from __future__ import annotations

import os
from typing import Dict, Literal, Optional

from pydantic import BaseModel


ReferenceStrategy = Literal["hex", "path"]


class StatisticsSettings(BaseModel):
    upcoming_window_days: int = 30
    """How far ahead a course may start and still count as upcoming."""

    upcoming_limit: int = 5
    recent_limit: int = 5

    trend_months: int = 6
    """Length of the trailing monthly registration trend, current month included."""

    timezone: str = "Europe/Berlin"
    """Zone used to interpret date-only and naive timestamps."""

    reference_strategy: ReferenceStrategy = "hex"


class RecordSourceConfig(BaseModel):
    api_base_url: Optional[str] = None
    api_key: Optional[str] = None
    timeout_seconds: int = 15
    database_url: Optional[str] = None
    app_ids: Dict[str, str] = {
        "instructors": "6996f4f24f9ee0c08fa67b5f",
        "rooms": "6996f4f29d5dc5124ed65432",
        "participants": "6996f4f2e9de9012fa96b0e6",
        "courses": "6996f4f3466f18ebe99ec905",
        "registrations": "6996f4f3afbdaf0969403241",
    }


class DashboardConfig(BaseModel):
    statistics: StatisticsSettings = StatisticsSettings()
    source: RecordSourceConfig = RecordSourceConfig()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_strategy(name: str, default: ReferenceStrategy) -> ReferenceStrategy:
    raw = (os.getenv(name) or "").strip().lower()
    if raw in ("hex", "path"):
        return raw  # type: ignore[return-value]
    return default


def load_statistics_settings() -> StatisticsSettings:
    defaults = StatisticsSettings()
    return StatisticsSettings(
        upcoming_window_days=_env_int("COURSE_DASHBOARD_UPCOMING_DAYS", defaults.upcoming_window_days),
        upcoming_limit=_env_int("COURSE_DASHBOARD_UPCOMING_LIMIT", defaults.upcoming_limit),
        recent_limit=_env_int("COURSE_DASHBOARD_RECENT_LIMIT", defaults.recent_limit),
        trend_months=_env_int("COURSE_DASHBOARD_TREND_MONTHS", defaults.trend_months),
        timezone=os.getenv("COURSE_DASHBOARD_TIMEZONE", defaults.timezone),
        reference_strategy=_env_strategy("COURSE_DASHBOARD_REFERENCE_STRATEGY", defaults.reference_strategy),
    )


def load_source_config() -> RecordSourceConfig:
    defaults = RecordSourceConfig()
    app_ids = {
        collection: os.getenv(f"COURSE_DASHBOARD_APP_{collection.upper()}", app_id)
        for collection, app_id in defaults.app_ids.items()
    }
    return RecordSourceConfig(
        api_base_url=os.getenv("COURSE_DASHBOARD_API_URL", defaults.api_base_url),
        api_key=os.getenv("COURSE_DASHBOARD_API_KEY", defaults.api_key),
        timeout_seconds=_env_int("COURSE_DASHBOARD_TIMEOUT_SECONDS", defaults.timeout_seconds),
        database_url=os.getenv("COURSE_DASHBOARD_DATABASE_URL", defaults.database_url),
        app_ids=app_ids,
    )


def load_dashboard_config() -> DashboardConfig:
    return DashboardConfig(statistics=load_statistics_settings(), source=load_source_config())
