from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .configuration import load_dashboard_config
from .dataset import coerce_timezone
from .loader import StatisticsOutcome, load_statistics
from .models import RecordSnapshot
from .records import (
    course_from_payload,
    instructor_from_payload,
    participant_from_payload,
    registration_from_payload,
    room_from_payload,
)
from .repository import RecordSource, build_record_source_from_env
from .service import StatisticsService

load_dotenv()

app = FastAPI(title="Course Dashboard API", version="0.1.0")
config = load_dashboard_config()
record_source: Optional[RecordSource] = build_record_source_from_env(config.source)


class RecordPayload(BaseModel):
    record_id: str
    createdat: Optional[str] = None
    updatedat: Optional[str] = None
    fields: Dict[str, Any] = Field(default_factory=dict)


class StatisticsRequest(BaseModel):
    now: Optional[datetime] = None
    instructors: List[RecordPayload] = Field(default_factory=list)
    rooms: List[RecordPayload] = Field(default_factory=list)
    participants: List[RecordPayload] = Field(default_factory=list)
    courses: List[RecordPayload] = Field(default_factory=list)
    registrations: List[RecordPayload] = Field(default_factory=list)


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/statistics")
async def statistics_endpoint(now: Optional[datetime] = Query(None)) -> JSONResponse:
    if record_source is None:
        raise HTTPException(
            status_code=500,
            detail=(
                "Neither COURSE_DASHBOARD_DATABASE_URL nor COURSE_DASHBOARD_API_URL is configured; "
                "POST the collections to /statistics for ad-hoc queries."
            ),
        )

    outcome = await load_statistics(record_source, _reference_time(now), config.statistics)
    status_code = 200 if outcome.state == "ready" else 503
    return JSONResponse(status_code=status_code, content=outcome.as_dict())


@app.post("/statistics")
async def inline_statistics_endpoint(request: StatisticsRequest) -> Dict[str, Any]:
    snapshot = RecordSnapshot(
        instructors=tuple(instructor_from_payload(p.model_dump()) for p in request.instructors),
        rooms=tuple(room_from_payload(p.model_dump()) for p in request.rooms),
        participants=tuple(participant_from_payload(p.model_dump()) for p in request.participants),
        courses=tuple(course_from_payload(p.model_dump()) for p in request.courses),
        registrations=tuple(registration_from_payload(p.model_dump()) for p in request.registrations),
    )
    statistics = StatisticsService(config.statistics).derive(snapshot, _reference_time(request.now))
    return StatisticsOutcome.ready(statistics).as_dict()


def _reference_time(now: Optional[datetime]) -> datetime:
    if now is not None:
        return now
    return datetime.now(coerce_timezone(config.statistics.timezone))
