from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterator, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .models import (
    CourseRecord,
    ParticipantRecord,
    RecordSnapshot,
    RegistrationRecord,
)
from .references import ReferenceResolver, build_index


def coerce_timezone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("UTC")


def normalize_datetime(dt: datetime, tz: ZoneInfo) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


@dataclass
class CourseDataset:
    """
    Read-only view over one ``RecordSnapshot``.

    Dates on the records are left untouched; the ``*_local`` accessors return
    them as aware datetimes in the dataset's timezone so comparisons against
    ``now`` never mix naive and aware values.
    """

    snapshot: RecordSnapshot
    timezone: str = "Europe/Berlin"
    resolver: ReferenceResolver = field(default_factory=ReferenceResolver)

    def __post_init__(self) -> None:
        self.tz = coerce_timezone(self.timezone)
        self._courses: Dict[str, CourseRecord] = build_index(self.snapshot.courses)
        self._participants: Dict[str, ParticipantRecord] = build_index(self.snapshot.participants)

    @property
    def courses(self) -> Sequence[CourseRecord]:
        return self.snapshot.courses

    @property
    def registrations(self) -> Sequence[RegistrationRecord]:
        return self.snapshot.registrations

    def localize(self, value: Optional[datetime]) -> Optional[datetime]:
        """
        Return ``value`` in the dataset's timezone, or ``None`` when there is
        no value or it cannot be shifted into that zone (timestamps at the
        edge of the ``datetime`` range).
        """

        if value is None:
            return None
        try:
            return normalize_datetime(value, self.tz)
        except OverflowError:
            return None

    def course_for(self, registration: RegistrationRecord) -> Optional[CourseRecord]:
        return self.resolver.resolve(registration.course_ref, self._courses)

    def participant_for(self, registration: RegistrationRecord) -> Optional[ParticipantRecord]:
        return self.resolver.resolve(registration.participant_ref, self._participants)

    def iter_dated_courses(self) -> Iterator[Tuple[CourseRecord, datetime, Optional[datetime]]]:
        """
        Yield ``(course, local_start, local_end)`` for courses with a start date.

        Courses without a start date are skipped; they still count towards
        the course total but take no part in date-based classification.
        """

        for course in self.snapshot.courses:
            start = self.localize(course.start_date)
            if start is None:
                continue
            yield course, start, self.localize(course.end_date)

    def registrations_between(self, start: datetime, end: datetime) -> Sequence[RegistrationRecord]:
        """Registrations dated inside ``[start, end]``, both bounds inclusive."""
        window_start = normalize_datetime(start, self.tz)
        window_end = normalize_datetime(end, self.tz)
        matches = []
        for registration in self.snapshot.registrations:
            registered_on = self.localize(registration.registered_on)
            if registered_on is not None and window_start <= registered_on <= window_end:
                matches.append(registration)
        return matches
