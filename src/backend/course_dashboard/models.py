from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence


class CourseStatus(str, Enum):
    PLANNED = "planned"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class InstructorRecord:
    record_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    subject: Optional[str] = None


@dataclass(frozen=True)
class RoomRecord:
    record_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    name: Optional[str] = None
    building: Optional[str] = None
    capacity: Optional[int] = None


@dataclass(frozen=True)
class ParticipantRecord:
    record_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    birth_date: Optional[datetime] = None


@dataclass(frozen=True)
class CourseRecord:
    """
    A course as stored in the record-storage app.

    ``instructor_ref`` and ``room_ref`` are the raw lookup strings from the
    storage API; use ``ReferenceResolver`` to turn them into records. A missing
    ``status`` means the course is still planned.
    """

    record_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    title: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    max_participants: Optional[int] = None
    price: Optional[float] = None
    status: Optional[CourseStatus] = None
    instructor_ref: Optional[str] = None
    room_ref: Optional[str] = None

    @property
    def effective_status(self) -> CourseStatus:
        return self.status if self.status is not None else CourseStatus.PLANNED


@dataclass(frozen=True)
class RegistrationRecord:
    record_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    participant_ref: Optional[str] = None
    course_ref: Optional[str] = None
    registered_on: Optional[datetime] = None
    paid: bool = False


@dataclass(frozen=True)
class RegistrationDetail:
    """A registration with the course and participant its references resolve to."""

    registration: RegistrationRecord
    course: Optional[CourseRecord] = None
    participant: Optional[ParticipantRecord] = None


@dataclass(frozen=True)
class RecordSnapshot:
    """The five collections fetched together in one refresh cycle."""

    instructors: Sequence[InstructorRecord] = ()
    rooms: Sequence[RoomRecord] = ()
    participants: Sequence[ParticipantRecord] = ()
    courses: Sequence[CourseRecord] = ()
    registrations: Sequence[RegistrationRecord] = ()


@dataclass(frozen=True)
class CardMetric:
    key: str
    label: str
    value: float
    unit: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class TrendPoint:
    timestamp: datetime
    value: float
    label: Optional[str] = None


@dataclass(frozen=True)
class TrendSeries:
    name: str
    points: Iterable[TrendPoint]
    unit: Optional[str] = None


@dataclass(frozen=True)
class StatusCount:
    status: CourseStatus
    count: int


@dataclass(frozen=True)
class DerivedStatistics:
    instructor_count: int
    room_count: int
    participant_count: int
    course_count: int
    registration_count: int
    paid_count: int
    unpaid_count: int
    revenue: float
    active_courses: Sequence[CourseRecord] = field(default_factory=list)
    upcoming_courses: Sequence[CourseRecord] = field(default_factory=list)
    recent_registrations: Sequence[RegistrationRecord] = field(default_factory=list)
    recent_registration_details: Sequence[RegistrationDetail] = field(default_factory=list)
    status_distribution: Sequence[StatusCount] = field(default_factory=list)
    monthly_registrations: Optional[TrendSeries] = None

    @property
    def paid_ratio(self) -> float:
        """Share of paid registrations in percent, 0 when nobody registered."""
        if not self.registration_count:
            return 0.0
        return self.paid_count / self.registration_count * 100

    def cards(self) -> List[CardMetric]:
        return [
            CardMetric("instructors", "Instructors", self.instructor_count, description="Teaching staff"),
            CardMetric("rooms", "Rooms", self.room_count, description="Available"),
            CardMetric("participants", "Participants", self.participant_count, description="Registered"),
            CardMetric("courses", "Courses", self.course_count, description="Total"),
            CardMetric("registrations", "Registrations", self.registration_count, description="Total"),
            CardMetric(
                "revenue",
                "Revenue (paid)",
                self.revenue,
                unit="EUR",
                description=f"From {self.paid_count} completed payments",
            ),
            CardMetric("paid_ratio", "Payment Status", self.paid_ratio, unit="%"),
        ]

    def as_dict(self) -> Dict[str, Any]:
        """
        Convert the statistics into a JSON-serialisable structure.

        Keys are camelCase so the frontend can consume the payload as-is.
        """

        def _date(value: Optional[datetime]) -> Optional[str]:
            return None if value is None else value.isoformat()

        def _serialize(obj: Any) -> Any:
            if isinstance(obj, CourseRecord):
                return {
                    "recordId": obj.record_id,
                    "title": obj.title,
                    "startDate": _date(obj.start_date),
                    "endDate": _date(obj.end_date),
                    "maxParticipants": obj.max_participants,
                    "price": obj.price,
                    "status": obj.effective_status.value,
                }
            if isinstance(obj, RegistrationRecord):
                return {
                    "recordId": obj.record_id,
                    "courseRef": obj.course_ref,
                    "participantRef": obj.participant_ref,
                    "registeredOn": _date(obj.registered_on),
                    "paid": obj.paid,
                }
            if isinstance(obj, RegistrationDetail):
                payload = _serialize(obj.registration)
                payload["courseTitle"] = None if obj.course is None else obj.course.title
                payload["participantName"] = None if obj.participant is None else obj.participant.name
                return payload
            if isinstance(obj, StatusCount):
                return {"status": obj.status.value, "count": obj.count}
            if isinstance(obj, TrendSeries):
                return {
                    "name": obj.name,
                    "unit": obj.unit,
                    "points": [_serialize(point) for point in obj.points],
                }
            if isinstance(obj, TrendPoint):
                return {"timestamp": obj.timestamp.isoformat(), "label": obj.label, "value": obj.value}
            if isinstance(obj, CardMetric):
                return {
                    "key": obj.key,
                    "label": obj.label,
                    "value": obj.value,
                    "unit": obj.unit,
                    "description": obj.description,
                }
            if isinstance(obj, Iterable) and not isinstance(obj, (str, bytes)):
                return [_serialize(item) for item in obj]
            return obj

        return {
            "counts": {
                "instructors": self.instructor_count,
                "rooms": self.room_count,
                "participants": self.participant_count,
                "courses": self.course_count,
                "registrations": self.registration_count,
            },
            "payments": {
                "paid": self.paid_count,
                "unpaid": self.unpaid_count,
                "paidRatio": self.paid_ratio,
                "revenue": self.revenue,
            },
            "activeCourses": _serialize(self.active_courses),
            "upcomingCourses": _serialize(self.upcoming_courses),
            "recentRegistrations": _serialize(self.recent_registration_details or self.recent_registrations),
            "statusDistribution": _serialize(self.status_distribution),
            "monthlyRegistrations": (
                None if self.monthly_registrations is None else _serialize(self.monthly_registrations)
            ),
            "cards": _serialize(self.cards()),
        }
