from __future__ import annotations

import json
import logging
import urllib.parse
import urllib.request
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, Row
from sqlalchemy.exc import SQLAlchemyError

from .configuration import RecordSourceConfig, load_source_config
from .models import (
    CourseRecord,
    InstructorRecord,
    ParticipantRecord,
    RecordSnapshot,
    RegistrationRecord,
    RoomRecord,
)
from .records import (
    course_from_payload,
    instructor_from_payload,
    parse_collection,
    participant_from_payload,
    registration_from_payload,
    room_from_payload,
)

logger = logging.getLogger(__name__)

COLLECTIONS = ("instructors", "rooms", "participants", "courses", "registrations")

_PARSERS: Dict[str, Callable[[Mapping[str, Any]], Any]] = {
    "instructors": instructor_from_payload,
    "rooms": room_from_payload,
    "participants": participant_from_payload,
    "courses": course_from_payload,
    "registrations": registration_from_payload,
}


class RecordFetchError(Exception):
    """Reading one of the record collections failed."""

    def __init__(self, collection: str, message: str):
        super().__init__(f"Failed to fetch {collection}: {message}")
        self.collection = collection


class RecordSource:
    """
    Interface for loading the five record collections.

    Every read returns the full collection for the organisation the source
    is scoped to, or raises ``RecordFetchError``. Reads are independent of
    each other and may run concurrently.
    """

    def fetch_instructors(self) -> Sequence[InstructorRecord]:
        raise NotImplementedError

    def fetch_rooms(self) -> Sequence[RoomRecord]:
        raise NotImplementedError

    def fetch_participants(self) -> Sequence[ParticipantRecord]:
        raise NotImplementedError

    def fetch_courses(self) -> Sequence[CourseRecord]:
        raise NotImplementedError

    def fetch_registrations(self) -> Sequence[RegistrationRecord]:
        raise NotImplementedError


class _CollectionSource(RecordSource):
    """Routes the five reads through one ``_fetch(collection)`` call."""

    def _fetch(self, collection: str) -> List[Any]:
        raise NotImplementedError

    def fetch_instructors(self) -> Sequence[InstructorRecord]:
        return self._fetch("instructors")

    def fetch_rooms(self) -> Sequence[RoomRecord]:
        return self._fetch("rooms")

    def fetch_participants(self) -> Sequence[ParticipantRecord]:
        return self._fetch("participants")

    def fetch_courses(self) -> Sequence[CourseRecord]:
        return self._fetch("courses")

    def fetch_registrations(self) -> Sequence[RegistrationRecord]:
        return self._fetch("registrations")


class HttpRecordSource(_CollectionSource):
    """
    Read collections from the record-storage REST API.

    Endpoint per collection:
      GET {base_url}/apps/{app_id}/records

    The body is either an object keyed by record id or a list of records.
    """

    def __init__(
        self,
        base_url: str,
        app_ids: Mapping[str, str],
        api_key: Optional[str] = None,
        timeout_s: int = 15,
    ):
        self.base_url = base_url.rstrip("/")
        self.app_ids = dict(app_ids)
        self.api_key = api_key
        self.timeout_s = timeout_s

    def _headers(self) -> Dict[str, str]:
        h = {"Accept": "application/json"}
        if self.api_key:
            h["Authorization"] = f"Bearer {self.api_key}"
        return h

    def _get(self, path: str) -> Any:
        url = f"{self.base_url}{path}"
        req = urllib.request.Request(url, headers=self._headers(), method="GET")
        with urllib.request.urlopen(req, timeout=self.timeout_s) as resp:
            return json.loads(resp.read().decode("utf-8"))

    def _fetch(self, collection: str) -> List[Any]:
        app_id = self.app_ids.get(collection)
        if not app_id:
            raise RecordFetchError(collection, "no app id configured")
        try:
            body = self._get(f"/apps/{urllib.parse.quote(app_id)}/records")
        except (OSError, ValueError) as exc:
            raise RecordFetchError(collection, f"{type(exc).__name__}: {exc}") from exc
        return parse_collection(body, _PARSERS[collection])


class SQLRecordSource(_CollectionSource):
    """
    Read collections from a relational mirror of the storage apps.

    Expected tables (one row per record, field columns named as in the apps):
      - instructors(record_id, createdat, updatedat, name, email, telefon, fachgebiet)
      - rooms(record_id, createdat, updatedat, raumname, gebaeude, kapazitaet)
      - participants(record_id, createdat, updatedat, name, email, telefon, geburtsdatum)
      - courses(record_id, createdat, updatedat, titel, beschreibung, startdatum, enddatum,
                max_teilnehmer, preis, status, dozent, raum)
      - registrations(record_id, createdat, updatedat, teilnehmer, kurs, anmeldedatum, bezahlt)
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    def _fetch(self, collection: str) -> List[Any]:
        if collection not in _PARSERS:
            raise RecordFetchError(collection, "unknown collection")
        query = text(f"SELECT * FROM {collection} ORDER BY record_id")
        try:
            with self.engine.connect() as connection:
                rows = connection.execute(query).fetchall()
        except SQLAlchemyError as exc:
            raise RecordFetchError(collection, str(exc)) from exc
        parser = _PARSERS[collection]
        return [parser(self._row_to_payload(row)) for row in rows]

    @staticmethod
    def _row_to_payload(row: Row) -> Dict[str, Any]:
        values = dict(row._mapping)
        return {
            "record_id": str(values.pop("record_id")),
            "createdat": values.pop("createdat", None),
            "updatedat": values.pop("updatedat", None),
            "fields": values,
        }


class InMemoryRecordSource(RecordSource):
    """Serves collections that are already in memory, e.g. from a request body."""

    def __init__(self, snapshot: RecordSnapshot):
        self.snapshot = snapshot

    def fetch_instructors(self) -> Sequence[InstructorRecord]:
        return tuple(self.snapshot.instructors)

    def fetch_rooms(self) -> Sequence[RoomRecord]:
        return tuple(self.snapshot.rooms)

    def fetch_participants(self) -> Sequence[ParticipantRecord]:
        return tuple(self.snapshot.participants)

    def fetch_courses(self) -> Sequence[CourseRecord]:
        return tuple(self.snapshot.courses)

    def fetch_registrations(self) -> Sequence[RegistrationRecord]:
        return tuple(self.snapshot.registrations)


def build_record_source_from_env(config: Optional[RecordSourceConfig] = None) -> Optional[RecordSource]:
    cfg = config or load_source_config()
    if cfg.database_url:
        engine = create_engine(cfg.database_url)
        return SQLRecordSource(engine)
    if cfg.api_base_url:
        return HttpRecordSource(
            base_url=cfg.api_base_url,
            app_ids=cfg.app_ids,
            api_key=cfg.api_key,
            timeout_s=cfg.timeout_seconds,
        )
    logger.info("No record source configured; only inline statistics requests are served")
    return None
