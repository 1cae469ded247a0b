from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from clockistry.core.authorization import Principal, Role
from clockistry.core.errors import Conflict
from clockistry.database import SessionLocal
from clockistry.main import app
from clockistry.models.time_entry import TimeEntry
from clockistry.services.timer_service import TimerStateMachine

client = TestClient(app)


def _auth_headers(user_id: int) -> dict:
    resp = client.post("/auth/token", json={"userId": user_id})
    assert resp.status_code == 200, f"token request failed: {resp.status_code} {resp.text}"
    return {"Authorization": f"Bearer {resp.json()['data']['accessToken']}"}


def _load(entry_id: str) -> TimeEntry:
    db = SessionLocal()
    try:
        return db.get(TimeEntry, entry_id)
    finally:
        db.close()


def test_start_creates_running_entry(clock, company_factory, user_factory):
    company = company_factory()
    user = user_factory(company_id=company.id)

    r = client.post(
        "/time-entries",
        json={"description": "Writing docs", "tags": ["docs", " docs ", "writing"]},
        headers=_auth_headers(user.id),
    )
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["success"] is True
    data = body["data"]
    assert data["isRunning"] is True
    assert data["endTime"] is None
    assert data["duration"] == 0
    assert data["userId"] == user.id
    assert data["companyId"] == company.id
    assert data["createdBy"] == user.id
    assert data["tags"] == ["docs", "writing"]
    assert data["startTime"].startswith("2024-03-05T09:00:00")


def test_stop_after_125_seconds_records_exact_duration(clock, company_factory, user_factory):
    user = user_factory(company_id=company_factory().id)
    headers = _auth_headers(user.id)

    started = client.post("/time-entries", json={}, headers=headers)
    assert started.status_code == 201, started.text
    entry_id = started.json()["data"]["id"]

    clock.advance(seconds=125)

    stopped = client.post(f"/time-entries/{entry_id}/stop", headers=headers)
    assert stopped.status_code == 200, stopped.text
    data = stopped.json()["data"]
    assert data["isRunning"] is False
    assert data["duration"] == 125
    assert data["durationFormatted"] == "00:02:05"

    row = _load(entry_id)
    assert row.is_running is False
    assert row.end_time == datetime(2024, 3, 5, 9, 2, 5)
    assert row.duration == 125


def test_second_start_conflicts_while_running(clock, company_factory, user_factory):
    user = user_factory(company_id=company_factory().id)
    headers = _auth_headers(user.id)

    assert client.post("/time-entries", json={}, headers=headers).status_code == 201

    r = client.post("/time-entries", json={"description": "again"}, headers=headers)
    assert r.status_code == 409
    body = r.json()
    assert body["error"] == "conflict"
    assert body["reason"] == "already_running"


def test_start_again_after_stop(clock, company_factory, user_factory):
    user = user_factory(company_id=company_factory().id)
    headers = _auth_headers(user.id)

    first = client.post("/time-entries", json={}, headers=headers).json()["data"]
    clock.advance(minutes=10)
    assert client.post(f"/time-entries/{first['id']}/stop", headers=headers).status_code == 200

    second = client.post("/time-entries", json={}, headers=headers)
    assert second.status_code == 201, second.text
    assert second.json()["data"]["id"] != first["id"]


def test_double_stop_conflicts_and_keeps_first_end_time(clock, company_factory, user_factory):
    user = user_factory(company_id=company_factory().id)
    headers = _auth_headers(user.id)

    entry_id = client.post("/time-entries", json={}, headers=headers).json()["data"]["id"]
    clock.advance(seconds=60)
    assert client.post(f"/time-entries/{entry_id}/stop", headers=headers).status_code == 200

    clock.advance(seconds=600)
    again = client.post(f"/time-entries/{entry_id}/stop", headers=headers)
    assert again.status_code == 409
    assert again.json()["reason"] == "already_stopped"

    row = _load(entry_id)
    assert row.duration == 60
    assert row.end_time == datetime(2024, 3, 5, 9, 1, 0)


def test_stop_with_clock_behind_start_records_zero(clock, company_factory, user_factory):
    user = user_factory(company_id=company_factory().id)
    headers = _auth_headers(user.id)

    entry_id = client.post("/time-entries", json={}, headers=headers).json()["data"]["id"]
    clock.advance(seconds=-30)

    r = client.post(f"/time-entries/{entry_id}/stop", headers=headers)
    assert r.status_code == 200, r.text
    assert r.json()["data"]["duration"] == 0


def test_backdated_start_is_accepted(clock, company_factory, user_factory):
    user = user_factory(company_id=company_factory().id)
    headers = _auth_headers(user.id)

    r = client.post(
        "/time-entries",
        json={"startTime": "2024-03-05T08:00:00Z"},
        headers=headers,
    )
    assert r.status_code == 201, r.text
    data = r.json()["data"]
    assert data["elapsed"] == 3600
    assert data["durationFormatted"] == "01:00:00"


def test_start_time_in_the_future_is_invalid(clock, company_factory, user_factory):
    user = user_factory(company_id=company_factory().id)

    future = (clock.now + timedelta(hours=2)).isoformat()
    r = client.post("/time-entries", json={"startTime": future}, headers=_auth_headers(user.id))
    assert r.status_code == 422
    assert r.json()["error"] == "invalid"


def test_unknown_body_field_is_invalid(clock, company_factory, user_factory):
    user = user_factory(company_id=company_factory().id)
    r = client.post("/time-entries", json={"status": "active"}, headers=_auth_headers(user.id))
    assert r.status_code == 422


def test_start_with_project_inherits_project_client(clock, company_factory, user_factory, client_factory, project_factory):
    company = company_factory()
    user = user_factory(company_id=company.id)
    acme = client_factory(company.id, name="Acme")
    project = project_factory(company.id, name="Website", client=acme)

    r = client.post("/time-entries", json={"projectId": project.id}, headers=_auth_headers(user.id))
    assert r.status_code == 201, r.text
    data = r.json()["data"]
    assert data["projectName"] == "Website"
    assert data["clientId"] == acme.id
    assert data["clientName"] == "Acme"


def test_start_with_project_of_another_company_is_not_found(clock, company_factory, user_factory, project_factory):
    mine = company_factory()
    other = company_factory()
    user = user_factory(company_id=mine.id)
    foreign = project_factory(other.id)

    r = client.post("/time-entries", json={"projectId": foreign.id}, headers=_auth_headers(user.id))
    assert r.status_code == 404

    db = SessionLocal()
    try:
        assert db.query(TimeEntry).count() == 0
    finally:
        db.close()


def test_running_endpoint_returns_null_when_idle(clock, company_factory, user_factory):
    user = user_factory(company_id=company_factory().id)
    headers = _auth_headers(user.id)

    idle = client.get(f"/time-entries/user/{user.id}/running", headers=headers)
    assert idle.status_code == 200, idle.text
    assert idle.json()["success"] is True
    assert idle.json()["data"] is None

    entry_id = client.post("/time-entries", json={}, headers=headers).json()["data"]["id"]
    clock.advance(seconds=42)

    running = client.get(f"/time-entries/user/{user.id}/running", headers=headers)
    assert running.status_code == 200
    data = running.json()["data"]
    assert data["id"] == entry_id
    assert data["elapsed"] == 42
    assert data["duration"] == 0


def test_delete_own_entry(clock, company_factory, user_factory):
    user = user_factory(company_id=company_factory().id)
    headers = _auth_headers(user.id)

    entry_id = client.post("/time-entries", json={}, headers=headers).json()["data"]["id"]

    r = client.delete(f"/time-entries/{entry_id}", headers=headers)
    assert r.status_code == 200, r.text
    assert r.json() == {"success": True, "data": None, "message": "Time entry deleted"}

    assert _load(entry_id) is None
    assert client.get(f"/time-entries/{entry_id}", headers=headers).status_code == 404


def test_stop_from_stale_session_conflicts_and_keeps_recorded_duration(clock, company_factory, user_factory):
    company = company_factory()
    user = user_factory(company_id=company.id)
    headers = _auth_headers(user.id)
    principal = Principal(id=user.id, role=Role.EMPLOYEE, company_id=company.id)

    entry_id = client.post("/time-entries", json={}, headers=headers).json()["data"]["id"]

    # This session still holds the entry as running after the API has stopped it.
    stale = SessionLocal()
    try:
        stale_timer = TimerStateMachine(stale, clock=clock)
        assert stale_timer.get(principal, entry_id).is_running is True

        clock.advance(seconds=10)
        assert client.post(f"/time-entries/{entry_id}/stop", headers=headers).status_code == 200

        clock.advance(seconds=300)
        with pytest.raises(Conflict) as excinfo:
            stale_timer.stop(principal, entry_id)
        assert excinfo.value.reason == Conflict.ALREADY_STOPPED
        stale.rollback()
    finally:
        stale.close()

    row = _load(entry_id)
    assert row.duration == 10
    assert row.end_time == datetime(2024, 3, 5, 9, 0, 10)
