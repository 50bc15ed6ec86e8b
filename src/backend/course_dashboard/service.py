from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Tuple

from .configuration import StatisticsSettings
from .dataset import CourseDataset
from .models import (
    CourseRecord,
    CourseStatus,
    DerivedStatistics,
    RecordSnapshot,
    RegistrationDetail,
    RegistrationRecord,
    StatusCount,
    TrendPoint,
    TrendSeries,
)
from .references import ReferenceResolver

# Registrations without a date sort after every dated one.
_UNDATED = datetime.min.replace(tzinfo=timezone.utc)


def active_courses(dataset: CourseDataset, now: datetime) -> List[CourseRecord]:
    """Courses that started before ``now`` and have not ended yet, in input order."""
    now = dataset.localize(now)
    return [
        course
        for course, start, end in dataset.iter_dated_courses()
        if start < now and (end is None or end > now)
    ]


def upcoming_courses(
    dataset: CourseDataset,
    now: datetime,
    window_days: int = 30,
    limit: int = 5,
) -> List[CourseRecord]:
    now = dataset.localize(now)
    horizon = now + timedelta(days=window_days)
    candidates = [(start, course) for course, start, _ in dataset.iter_dated_courses() if now < start < horizon]
    candidates.sort(key=lambda item: item[0])
    return [course for _, course in candidates[: max(limit, 0)]]


def payment_split(registrations: Iterable[RegistrationRecord]) -> Tuple[int, int]:
    """Return ``(paid, unpaid)``; only an explicit ``paid is True`` counts as paid."""
    paid = unpaid = 0
    for registration in registrations:
        if registration.paid is True:
            paid += 1
        else:
            unpaid += 1
    return paid, unpaid


def total_revenue(dataset: CourseDataset) -> float:
    """
    Sum the course price of every paid registration.

    Registrations whose course reference cannot be resolved, or whose course
    has no price, add nothing.
    """

    revenue = 0.0
    for registration in dataset.registrations:
        if registration.paid is not True:
            continue
        course = dataset.course_for(registration)
        if course is None or course.price is None or course.price < 0:
            continue
        revenue += course.price
    return revenue


def recent_registrations(dataset: CourseDataset, limit: int = 5) -> List[RegistrationRecord]:
    def _key(registration: RegistrationRecord) -> datetime:
        registered_on = dataset.localize(registration.registered_on)
        return _UNDATED if registered_on is None else registered_on

    # sorted() keeps equal keys in input order even with reverse=True.
    ordered = sorted(dataset.registrations, key=_key, reverse=True)
    return ordered[: max(limit, 0)]


def registration_details(
    dataset: CourseDataset, registrations: Iterable[RegistrationRecord]
) -> List[RegistrationDetail]:
    """Pair each registration with its resolved course and participant, if any."""
    return [
        RegistrationDetail(
            registration=registration,
            course=dataset.course_for(registration),
            participant=dataset.participant_for(registration),
        )
        for registration in registrations
    ]


def _shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def month_windows(now: datetime, months: int) -> List[Tuple[datetime, datetime]]:
    """
    Inclusive ``(start_of_month, end_of_month)`` bounds for the trailing
    ``months`` calendar months ending with the month of ``now``, oldest first.
    """

    windows: List[Tuple[datetime, datetime]] = []
    for offset in range(max(months, 0) - 1, -1, -1):
        year, month = _shift_month(now.year, now.month, -offset)
        next_year, next_month = _shift_month(year, month, 1)
        start = datetime(year, month, 1, tzinfo=now.tzinfo)
        end = datetime(next_year, next_month, 1, tzinfo=now.tzinfo) - timedelta(microseconds=1)
        windows.append((start, end))
    return windows


def monthly_registrations(dataset: CourseDataset, now: datetime, months: int = 6) -> TrendSeries:
    now = dataset.localize(now)
    points = [
        TrendPoint(
            timestamp=start,
            value=float(len(dataset.registrations_between(start, end))),
            label=start.strftime("%Y-%m"),
        )
        for start, end in month_windows(now, months)
    ]
    return TrendSeries(name="Registrations per Month", points=points, unit="registrations")


def status_distribution(courses: Iterable[CourseRecord]) -> List[StatusCount]:
    """Course counts per status in enumeration order, zero counts left out."""
    counts = Counter(course.effective_status for course in courses)
    return [StatusCount(status=status, count=counts[status]) for status in CourseStatus if counts[status]]


class StatisticsService:
    """
    Derives the dashboard statistics from one snapshot of the five collections.

    ``derive`` is pure: it reads no clock and performs no I/O, so the same
    snapshot and ``now`` always give the same result.
    """

    def __init__(self, settings: Optional[StatisticsSettings] = None) -> None:
        self.settings = settings or StatisticsSettings()
        self.resolver = ReferenceResolver(self.settings.reference_strategy)

    def dataset(self, snapshot: RecordSnapshot) -> CourseDataset:
        return CourseDataset(snapshot=snapshot, timezone=self.settings.timezone, resolver=self.resolver)

    def derive(self, snapshot: RecordSnapshot, now: datetime) -> DerivedStatistics:
        dataset = self.dataset(snapshot)
        settings = self.settings
        paid, unpaid = payment_split(snapshot.registrations)
        recent = recent_registrations(dataset, limit=settings.recent_limit)

        return DerivedStatistics(
            instructor_count=len(snapshot.instructors),
            room_count=len(snapshot.rooms),
            participant_count=len(snapshot.participants),
            course_count=len(snapshot.courses),
            registration_count=len(snapshot.registrations),
            paid_count=paid,
            unpaid_count=unpaid,
            revenue=total_revenue(dataset),
            active_courses=active_courses(dataset, now),
            upcoming_courses=upcoming_courses(
                dataset,
                now,
                window_days=settings.upcoming_window_days,
                limit=settings.upcoming_limit,
            ),
            recent_registrations=recent,
            recent_registration_details=registration_details(dataset, recent),
            status_distribution=status_distribution(snapshot.courses),
            monthly_registrations=monthly_registrations(dataset, now, months=settings.trend_months),
        )


def derive_statistics(
    snapshot: RecordSnapshot,
    now: datetime,
    settings: Optional[StatisticsSettings] = None,
) -> DerivedStatistics:
    return StatisticsService(settings).derive(snapshot, now)

