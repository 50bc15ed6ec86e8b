"""
Normalise raw record-storage payloads into typed records.

The storage API returns every record as::

    {"record_id": "...", "createdat": "...", "updatedat": "...", "fields": {...}}

with German field names chosen when the apps were set up. Parsing is lenient:
a value that cannot be interpreted becomes ``None`` (or ``False`` for flags)
so one sloppy record never breaks a dashboard refresh.
"""

from __future__ import annotations

import math
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .models import (
    CourseRecord,
    CourseStatus,
    InstructorRecord,
    ParticipantRecord,
    RegistrationRecord,
    RoomRecord,
)

_TRUE_STRINGS = {"1", "true", "yes", "on"}


def parse_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str) or not value.strip():
        return None
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        return None


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return False


def parse_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def parse_int(value: Any) -> Optional[int]:
    number = parse_float(value)
    if number is None:
        return None
    return int(number)


def _non_negative(value: Optional[float]) -> Optional[float]:
    if value is None or value < 0:
        return None
    return value


def parse_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_status(value: Any) -> Optional[CourseStatus]:
    raw = parse_str(value)
    if raw is None:
        return None
    try:
        return CourseStatus(raw.lower())
    except ValueError:
        return None


def _envelope(payload: Mapping[str, Any]) -> Tuple[str, Optional[datetime], Optional[datetime], Mapping[str, Any]]:
    fields = payload.get("fields") or {}
    return (
        str(payload.get("record_id") or payload.get("id") or ""),
        parse_datetime(payload.get("createdat")),
        parse_datetime(payload.get("updatedat")),
        fields if isinstance(fields, Mapping) else {},
    )


def instructor_from_payload(payload: Mapping[str, Any]) -> InstructorRecord:
    record_id, created_at, updated_at, fields = _envelope(payload)
    return InstructorRecord(
        record_id=record_id,
        created_at=created_at,
        updated_at=updated_at,
        name=parse_str(fields.get("name")),
        email=parse_str(fields.get("email")),
        phone=parse_str(fields.get("telefon")),
        subject=parse_str(fields.get("fachgebiet")),
    )


def room_from_payload(payload: Mapping[str, Any]) -> RoomRecord:
    record_id, created_at, updated_at, fields = _envelope(payload)
    return RoomRecord(
        record_id=record_id,
        created_at=created_at,
        updated_at=updated_at,
        name=parse_str(fields.get("raumname")),
        building=parse_str(fields.get("gebaeude")),
        capacity=parse_int(fields.get("kapazitaet")),
    )


def participant_from_payload(payload: Mapping[str, Any]) -> ParticipantRecord:
    record_id, created_at, updated_at, fields = _envelope(payload)
    return ParticipantRecord(
        record_id=record_id,
        created_at=created_at,
        updated_at=updated_at,
        name=parse_str(fields.get("name")),
        email=parse_str(fields.get("email")),
        phone=parse_str(fields.get("telefon")),
        birth_date=parse_datetime(fields.get("geburtsdatum")),
    )


def course_from_payload(payload: Mapping[str, Any]) -> CourseRecord:
    record_id, created_at, updated_at, fields = _envelope(payload)
    return CourseRecord(
        record_id=record_id,
        created_at=created_at,
        updated_at=updated_at,
        title=parse_str(fields.get("titel")),
        description=parse_str(fields.get("beschreibung")),
        start_date=parse_datetime(fields.get("startdatum")),
        end_date=parse_datetime(fields.get("enddatum")),
        max_participants=parse_int(fields.get("max_teilnehmer")),
        price=_non_negative(parse_float(fields.get("preis"))),
        status=parse_status(fields.get("status")),
        instructor_ref=parse_str(fields.get("dozent")),
        room_ref=parse_str(fields.get("raum")),
    )


def registration_from_payload(payload: Mapping[str, Any]) -> RegistrationRecord:
    record_id, created_at, updated_at, fields = _envelope(payload)
    return RegistrationRecord(
        record_id=record_id,
        created_at=created_at,
        updated_at=updated_at,
        participant_ref=parse_str(fields.get("teilnehmer")),
        course_ref=parse_str(fields.get("kurs")),
        registered_on=parse_datetime(fields.get("anmeldedatum")),
        paid=parse_bool(fields.get("bezahlt")),
    )


def iter_payloads(body: Any) -> Iterable[Dict[str, Any]]:
    """
    Yield record payloads from an API response body.

    The storage API answers with an object keyed by record id; list bodies
    are accepted too. The key fills in ``record_id`` when the payload omits it.
    """

    if isinstance(body, Mapping):
        for record_id, payload in body.items():
            if not isinstance(payload, Mapping):
                continue
            item = dict(payload)
            item.setdefault("record_id", str(record_id))
            yield item
    elif isinstance(body, list):
        for payload in body:
            if isinstance(payload, Mapping):
                yield dict(payload)


def parse_collection(body: Any, parser) -> List[Any]:
    return [parser(payload) for payload in iter_payloads(body)]
