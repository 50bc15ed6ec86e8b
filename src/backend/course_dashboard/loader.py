"""
Fetch the five collections concurrently and turn them into a dashboard outcome.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Literal, Optional

from .configuration import StatisticsSettings
from .models import DerivedStatistics, RecordSnapshot
from .repository import RecordSource
from .service import StatisticsService

logger = logging.getLogger(__name__)

OutcomeState = Literal["loading", "ready", "unavailable"]


class StatisticsUnavailableError(Exception):
    """At least one collection could not be fetched; no statistics can be shown."""


@dataclass(frozen=True)
class StatisticsOutcome:
    state: OutcomeState
    statistics: Optional[DerivedStatistics] = None
    reason: Optional[str] = None

    @classmethod
    def loading(cls) -> "StatisticsOutcome":
        return cls(state="loading")

    @classmethod
    def ready(cls, statistics: DerivedStatistics) -> "StatisticsOutcome":
        return cls(state="ready", statistics=statistics)

    @classmethod
    def unavailable(cls, reason: str) -> "StatisticsOutcome":
        return cls(state="unavailable", reason=reason)

    def as_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"state": self.state}
        if self.statistics is not None:
            payload["data"] = self.statistics.as_dict()
        if self.reason is not None:
            payload["reason"] = self.reason
        return payload


async def load_snapshot(source: RecordSource) -> RecordSnapshot:
    """
    Issue the five reads concurrently and wait for all of them.

    If any read fails the whole load fails; results of the reads that did
    succeed are dropped. Cancelling the awaiting task cancels the wait, the
    worker threads finish on their own and their results are discarded.
    """

    try:
        instructors, rooms, participants, courses, registrations = await asyncio.gather(
            asyncio.to_thread(source.fetch_instructors),
            asyncio.to_thread(source.fetch_rooms),
            asyncio.to_thread(source.fetch_participants),
            asyncio.to_thread(source.fetch_courses),
            asyncio.to_thread(source.fetch_registrations),
        )
    except Exception as exc:
        logger.warning("Failed to load dashboard records: %s", exc)
        raise StatisticsUnavailableError(str(exc)) from exc

    return RecordSnapshot(
        instructors=tuple(instructors),
        rooms=tuple(rooms),
        participants=tuple(participants),
        courses=tuple(courses),
        registrations=tuple(registrations),
    )


async def load_statistics(
    source: RecordSource,
    now: datetime,
    settings: Optional[StatisticsSettings] = None,
) -> StatisticsOutcome:
    try:
        snapshot = await load_snapshot(source)
    except StatisticsUnavailableError as exc:
        return StatisticsOutcome.unavailable(str(exc))
    return StatisticsOutcome.ready(StatisticsService(settings).derive(snapshot, now))
