from __future__ import annotations

from datetime import datetime

from fastapi.testclient import TestClient

from clockistry.main import app

client = TestClient(app)


def _auth_headers(user_id: int) -> dict:
    resp = client.post("/auth/token", json={"userId": user_id})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['data']['accessToken']}"}


def test_end_date_includes_the_whole_last_day(clock, company_factory, user_factory, entry_factory):
    user = user_factory(company_id=company_factory().id)
    late = entry_factory(user, datetime(2024, 3, 5, 23, 50, 0), duration=300)
    entry_factory(user, datetime(2024, 3, 6, 0, 0, 0), duration=300)

    r = client.get(
        "/time-entries",
        params={"startDate": "2024-03-05", "endDate": "2024-03-05"},
        headers=_auth_headers(user.id),
    )
    assert r.status_code == 200, r.text
    assert [row["id"] for row in r.json()["data"]] == [late.id]


def test_start_date_begins_at_midnight(clock, company_factory, user_factory, entry_factory):
    user = user_factory(company_id=company_factory().id)
    entry_factory(user, datetime(2024, 3, 4, 23, 59, 59), duration=1)
    first = entry_factory(user, datetime(2024, 3, 5, 0, 0, 0), duration=60)

    r = client.get("/time-entries", params={"startDate": "2024-03-05"}, headers=_auth_headers(user.id))
    assert [row["id"] for row in r.json()["data"]] == [first.id]


def test_inverted_date_range_is_invalid(clock, company_factory, user_factory):
    user = user_factory(company_id=company_factory().id)
    r = client.get(
        "/time-entries",
        params={"startDate": "2024-03-06", "endDate": "2024-03-05"},
        headers=_auth_headers(user.id),
    )
    assert r.status_code == 422
    assert r.json()["error"] == "invalid"


def test_filters_by_project_and_billable(clock, company_factory, user_factory, project_factory, entry_factory):
    company = company_factory()
    user = user_factory(company_id=company.id)
    website = project_factory(company.id, name="Website")
    other = project_factory(company.id, name="Other")

    billable_web = entry_factory(user, datetime(2024, 3, 1, 9, 0, 0), is_billable=True, project=website)
    entry_factory(user, datetime(2024, 3, 2, 9, 0, 0), is_billable=False, project=website)
    entry_factory(user, datetime(2024, 3, 3, 9, 0, 0), is_billable=True, project=other)
    headers = _auth_headers(user.id)

    by_project = client.get("/time-entries", params={"projectId": website.id}, headers=headers).json()["data"]
    assert len(by_project) == 2
    assert {row["projectName"] for row in by_project} == {"Website"}

    both = client.get(
        "/time-entries",
        params={"projectId": website.id, "billableOnly": "true"},
        headers=headers,
    ).json()["data"]
    assert [row["id"] for row in both] == [billable_web.id]


def test_is_running_filter(clock, company_factory, user_factory, entry_factory):
    user = user_factory(company_id=company_factory().id)
    entry_factory(user, datetime(2024, 3, 4, 9, 0, 0))
    running = entry_factory(user, datetime(2024, 3, 5, 8, 0, 0), is_running=True)

    r = client.get("/time-entries", params={"isRunning": "true"}, headers=_auth_headers(user.id))
    data = r.json()["data"]
    assert [row["id"] for row in data] == [running.id]
    assert data[0]["elapsed"] == 3600


def test_newest_first_with_pagination(clock, company_factory, user_factory, entry_factory):
    user = user_factory(company_id=company_factory().id)
    oldest = entry_factory(user, datetime(2024, 3, 1, 9, 0, 0))
    middle = entry_factory(user, datetime(2024, 3, 2, 9, 0, 0))
    newest = entry_factory(user, datetime(2024, 3, 3, 9, 0, 0))
    headers = _auth_headers(user.id)

    page1 = client.get("/time-entries", params={"limit": 2, "offset": 0}, headers=headers).json()["data"]
    page2 = client.get("/time-entries", params={"limit": 2, "offset": 2}, headers=headers).json()["data"]

    assert [row["id"] for row in page1] == [newest.id, middle.id]
    assert [row["id"] for row in page2] == [oldest.id]


def test_limit_is_bounded(clock, company_factory, user_factory):
    user = user_factory(company_id=company_factory().id)
    r = client.get("/time-entries", params={"limit": 0}, headers=_auth_headers(user.id))
    assert r.status_code == 422
