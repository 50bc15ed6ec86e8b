"""
Course-management dashboard statistics.

Fetches instructors, rooms, participants, courses and registrations from the
record-storage API and derives the aggregates shown on the admin dashboard:
counts, payment split and revenue, active and upcoming courses, recent
registrations, course status distribution and the monthly registration trend.
"""

from .configuration import (  # noqa: F401
    DashboardConfig,
    RecordSourceConfig,
    StatisticsSettings,
    load_dashboard_config,
)
from .dataset import CourseDataset  # noqa: F401
from .loader import (  # noqa: F401
    StatisticsOutcome,
    StatisticsUnavailableError,
    load_snapshot,
    load_statistics,
)
from .models import (  # noqa: F401
    CardMetric,
    CourseRecord,
    CourseStatus,
    DerivedStatistics,
    InstructorRecord,
    ParticipantRecord,
    RecordSnapshot,
    RegistrationDetail,
    RegistrationRecord,
    RoomRecord,
    StatusCount,
    TrendPoint,
    TrendSeries,
)
from .references import ReferenceResolver, build_index  # noqa: F401
from .repository import (  # noqa: F401
    HttpRecordSource,
    InMemoryRecordSource,
    RecordFetchError,
    RecordSource,
    SQLRecordSource,
    build_record_source_from_env,
)
from .service import StatisticsService, derive_statistics  # noqa: F401
