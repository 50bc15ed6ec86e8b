from datetime import datetime, timezone

import pytest

from backend.course_dashboard.configuration import StatisticsSettings


@pytest.fixture
def now():
    return datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def settings():
    """Statistics settings pinned to UTC so expectations read as plain dates."""
    return StatisticsSettings(timezone="UTC")
