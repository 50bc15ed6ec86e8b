from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from backend.course_dashboard import server
from backend.course_dashboard.models import RecordSnapshot
from backend.course_dashboard.repository import InMemoryRecordSource, RecordFetchError
from tests.factories import COURSES_APP, create_test_course, create_test_registration, hex_id, record_url


class _FailingSource(InMemoryRecordSource):
    def fetch_registrations(self):
        raise RecordFetchError("registrations", "timed out")


@pytest.fixture
def client():
    return TestClient(server.app)


@pytest.fixture
def snapshot(now):
    course = create_test_course(1, start=now - timedelta(days=3), end=now + timedelta(days=3), price=80)
    return RecordSnapshot(
        courses=(course, create_test_course(2, start=now + timedelta(days=7))),
        registrations=(
            create_test_registration(1, course=course, paid=True),
            create_test_registration(2, course=course, paid=False),
        ),
    )


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_statistics_from_configured_source(client, monkeypatch, snapshot):
    monkeypatch.setattr(server, "record_source", InMemoryRecordSource(snapshot))

    response = client.get("/statistics", params={"now": "2026-03-15T12:00:00Z"})

    assert response.status_code == 200
    body = response.json()
    assert body["state"] == "ready"
    assert body["data"]["payments"] == {"paid": 1, "unpaid": 1, "paidRatio": 50.0, "revenue": 80.0}
    assert [c["recordId"] for c in body["data"]["upcomingCourses"]] == [hex_id(2)]


def test_statistics_unavailable_when_a_fetch_fails(client, monkeypatch, snapshot):
    monkeypatch.setattr(server, "record_source", _FailingSource(snapshot))

    response = client.get("/statistics")

    assert response.status_code == 503
    body = response.json()
    assert body["state"] == "unavailable"
    assert "registrations" in body["reason"]
    assert "data" not in body


def test_statistics_without_source(client, monkeypatch):
    monkeypatch.setattr(server, "record_source", None)
    assert client.get("/statistics").status_code == 500


def test_inline_statistics(client):
    course_id = hex_id(42)
    payload = {
        "now": "2026-03-15T12:00:00+00:00",
        "courses": [
            {
                "record_id": course_id,
                "createdat": "2026-01-01T00:00:00",
                "fields": {"titel": "Rhetorik", "startdatum": "2026-03-01", "preis": 120, "status": "active"},
            }
        ],
        "registrations": [
            {"record_id": "r1", "fields": {"kurs": record_url(COURSES_APP, course_id), "bezahlt": True}},
            {"record_id": "r2", "fields": {"kurs": record_url(COURSES_APP, course_id)}},
        ],
        "participants": [{"record_id": "p1", "fields": {"name": "Jo"}}],
    }

    response = client.post("/statistics", json=payload)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["counts"]["participants"] == 1
    assert data["payments"]["revenue"] == 120.0
    assert [c["title"] for c in data["activeCourses"]] == ["Rhetorik"]
    assert data["statusDistribution"] == [{"status": "active", "count": 1}]
    assert [r["courseTitle"] for r in data["recentRegistrations"]] == ["Rhetorik", "Rhetorik"]


def test_inline_statistics_tolerates_dates_at_the_edge_of_the_calendar(client):
    payload = {
        "now": "2026-03-15T12:00:00+00:00",
        "courses": [{"record_id": hex_id(1), "fields": {"startdatum": "9999-12-31T23:30:00-05:00"}}],
        "registrations": [{"record_id": "r1", "fields": {"anmeldedatum": "0001-01-01T00:10:00+05:00"}}],
    }

    response = client.post("/statistics", json=payload)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["counts"]["courses"] == 1
    assert data["counts"]["registrations"] == 1
    assert data["activeCourses"] == []
