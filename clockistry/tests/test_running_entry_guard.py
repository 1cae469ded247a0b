import threading
from datetime import datetime
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError

from clockistry.core.authorization import Principal, Role
from clockistry.core.errors import Conflict
from clockistry.database import SessionLocal
from clockistry.main import app
from clockistry.models.time_entry import TimeEntry
from clockistry.schemas.time_entry import TimeEntryStart
from clockistry.services import timer_service
from clockistry.services.timer_service import TimerStateMachine

client = TestClient(app)


def _auth_headers(user_id: int) -> dict:
    resp = client.post("/auth/token", json={"userId": user_id})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['data']['accessToken']}"}


def _running_row(user) -> TimeEntry:
    return TimeEntry(
        id=str(uuid4()),
        user_id=user.id,
        company_id=user.company_id,
        created_by=user.id,
        start_time=datetime(2024, 3, 5, 9, 0, 0),
        end_time=None,
        duration=0,
        is_running=True,
        is_billable=False,
        tags=[],
    )


def test_unique_running_entry_prevents_duplicates(company_factory, user_factory):
    user = user_factory(company_id=company_factory().id)

    db1 = SessionLocal()
    db2 = SessionLocal()

    try:
        db1.add(_running_row(user))
        db2.add(_running_row(user))

        db1.commit()

        with pytest.raises(IntegrityError):
            db2.commit()
    finally:
        db1.rollback()
        db2.rollback()
        db1.close()
        db2.close()


def test_running_entries_of_different_users_coexist(company_factory, user_factory):
    company = company_factory()
    a = user_factory(company_id=company.id)
    b = user_factory(company_id=company.id)

    db = SessionLocal()
    try:
        db.add(_running_row(a))
        db.add(_running_row(b))
        db.commit()
        assert db.query(TimeEntry).filter(TimeEntry.is_running.is_(True)).count() == 2
    finally:
        db.close()


def test_lost_start_race_is_reported_as_conflict(monkeypatch, clock, company_factory, user_factory):
    user = user_factory(company_id=company_factory().id)
    headers = _auth_headers(user.id)

    # Simulate a concurrent start that slipped past the pre-check: only the index can refuse it.
    monkeypatch.setattr(timer_service, "get_running_entry", lambda db, scope, user_id: None)

    first = client.post("/time-entries", json={}, headers=headers)
    assert first.status_code == 201, first.text

    second = client.post("/time-entries", json={}, headers=headers)
    assert second.status_code == 409, second.text
    assert second.json()["reason"] == "already_running"

    db = SessionLocal()
    try:
        assert db.query(TimeEntry).filter(TimeEntry.user_id == user.id).count() == 1
    finally:
        db.close()


def test_check_constraint_blocks_negative_duration(company_factory, user_factory):
    user = user_factory(company_id=company_factory().id)

    db = SessionLocal()
    try:
        row = _running_row(user)
        row.is_running = False
        row.end_time = datetime(2024, 3, 5, 10, 0, 0)
        row.duration = -1
        db.add(row)

        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()
    finally:
        db.close()


def test_check_constraint_blocks_running_entry_with_end_time(company_factory, user_factory):
    user = user_factory(company_id=company_factory().id)

    db = SessionLocal()
    try:
        row = _running_row(user)
        row.end_time = datetime(2024, 3, 5, 10, 0, 0)
        db.add(row)

        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()
    finally:
        db.close()


def test_concurrent_starts_leave_exactly_one_running_entry(company_factory, user_factory):
    company = company_factory()
    user = user_factory(company_id=company.id)
    principal = Principal(id=user.id, role=Role.EMPLOYEE, company_id=company.id)
    started_at = datetime(2024, 3, 5, 9, 0, 0)

    # Two request handlers, separate sessions, released at the same moment.
    barrier = threading.Barrier(2)
    outcomes = []
    lock = threading.Lock()

    def handler():
        db = SessionLocal()
        try:
            timer = TimerStateMachine(db, clock=lambda: started_at)
            barrier.wait()
            try:
                timer.start(principal, TimeEntryStart())
                db.commit()
                outcome = "started"
            except Conflict as exc:
                db.rollback()
                outcome = exc.reason
            with lock:
                outcomes.append(outcome)
        finally:
            db.close()

    threads = [threading.Thread(target=handler) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(outcomes) == [Conflict.ALREADY_RUNNING, "started"]

    db = SessionLocal()
    try:
        running = (
            db.query(TimeEntry)
            .filter(TimeEntry.user_id == user.id, TimeEntry.is_running.is_(True))
            .count()
        )
        assert running == 1
    finally:
        db.close()
