from fastapi.testclient import TestClient

from clockistry.main import app

client = TestClient(app)


def _auth_headers(user_id: int) -> dict:
    resp = client.post("/auth/token", json={"userId": user_id})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['data']['accessToken']}"}


def _start(headers, **body) -> dict:
    r = client.post("/time-entries", json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["data"]


def test_absent_fields_are_left_alone(clock, company_factory, user_factory):
    user = user_factory(company_id=company_factory().id)
    headers = _auth_headers(user.id)
    entry = _start(headers, description="Standup", tags=["meeting"], isBillable=True)

    r = client.put(f"/time-entries/{entry['id']}", json={}, headers=headers)
    assert r.status_code == 200, r.text
    data = r.json()["data"]
    assert data["description"] == "Standup"
    assert data["tags"] == ["meeting"]
    assert data["isBillable"] is True

    r = client.put(f"/time-entries/{entry['id']}", json={"tags": ["sync"]}, headers=headers)
    data = r.json()["data"]
    assert data["description"] == "Standup"
    assert data["tags"] == ["sync"]


def test_explicit_null_clears_field(clock, company_factory, user_factory, project_factory):
    company = company_factory()
    user = user_factory(company_id=company.id)
    project = project_factory(company.id, name="Internal")
    headers = _auth_headers(user.id)
    entry = _start(headers, description="Standup", projectId=project.id, tags=["meeting"])

    r = client.put(
        f"/time-entries/{entry['id']}",
        json={"description": None, "projectId": None, "tags": None},
        headers=headers,
    )
    assert r.status_code == 200, r.text
    data = r.json()["data"]
    assert data["description"] is None
    assert data["projectId"] is None
    assert data["projectName"] is None
    assert data["tags"] == []


def test_null_billable_flag_is_invalid(clock, company_factory, user_factory):
    user = user_factory(company_id=company_factory().id)
    headers = _auth_headers(user.id)
    entry = _start(headers)

    r = client.put(f"/time-entries/{entry['id']}", json={"isBillable": None}, headers=headers)
    assert r.status_code == 422
    assert r.json()["error"] == "invalid"


def test_unresolved_project_keeps_cached_reference_and_applies_the_rest(clock, company_factory, user_factory, project_factory):
    mine = company_factory()
    other = company_factory()
    user = user_factory(company_id=mine.id)
    alpha = project_factory(mine.id, name="Alpha")
    foreign = project_factory(other.id, name="Foreign")
    headers = _auth_headers(user.id)
    entry = _start(headers, description="before", projectId=alpha.id)

    for project_id in (foreign.id, 999999):
        r = client.put(
            f"/time-entries/{entry['id']}",
            json={"description": f"after {project_id}", "projectId": project_id},
            headers=headers,
        )
        assert r.status_code == 200, r.text
        data = r.json()["data"]
        assert data["description"] == f"after {project_id}"
        assert data["projectId"] == alpha.id
        assert data["projectName"] == "Alpha"


def test_unresolved_client_keeps_cached_client(clock, company_factory, user_factory, client_factory):
    company = company_factory()
    user = user_factory(company_id=company.id)
    acme = client_factory(company.id, name="Acme")
    headers = _auth_headers(user.id)
    entry = _start(headers, clientId=acme.id)

    r = client.put(
        f"/time-entries/{entry['id']}",
        json={"clientId": 424242, "tags": ["billing"]},
        headers=headers,
    )
    assert r.status_code == 200, r.text
    data = r.json()["data"]
    assert data["clientId"] == acme.id
    assert data["clientName"] == "Acme"
    assert data["tags"] == ["billing"]


def test_repointing_project_brings_its_client(clock, company_factory, user_factory, client_factory, project_factory):
    company = company_factory()
    user = user_factory(company_id=company.id)
    acme = client_factory(company.id, name="Acme")
    globex = client_factory(company.id, name="Globex")
    website = project_factory(company.id, name="Website", client=acme)
    headers = _auth_headers(user.id)
    entry = _start(headers)

    r = client.put(f"/time-entries/{entry['id']}", json={"projectId": website.id}, headers=headers)
    data = r.json()["data"]
    assert data["projectName"] == "Website"
    assert data["clientId"] == acme.id
    assert data["clientName"] == "Acme"

    # An explicit client in the same patch wins over the project's.
    r = client.put(
        f"/time-entries/{entry['id']}",
        json={"projectId": website.id, "clientId": globex.id},
        headers=headers,
    )
    data = r.json()["data"]
    assert data["clientId"] == globex.id
    assert data["clientName"] == "Globex"


def test_update_after_stop_keeps_duration(clock, company_factory, user_factory):
    user = user_factory(company_id=company_factory().id)
    headers = _auth_headers(user.id)
    entry = _start(headers)
    clock.advance(minutes=30)
    client.post(f"/time-entries/{entry['id']}/stop", headers=headers)

    clock.advance(hours=3)
    r = client.put(f"/time-entries/{entry['id']}", json={"description": "Review"}, headers=headers)
    assert r.status_code == 200, r.text
    data = r.json()["data"]
    assert data["description"] == "Review"
    assert data["duration"] == 1800
    assert data["isRunning"] is False


def test_renaming_project_keeps_name_on_existing_entries(clock, company_factory, user_factory):
    company = company_factory()
    admin = user_factory(company_id=company.id, role="admin")
    headers = _auth_headers(admin.id)

    project = client.post("/projects", json={"name": "Old name"}, headers=headers)
    assert project.status_code == 201, project.text
    project_id = project.json()["data"]["id"]

    entry = _start(headers, projectId=project_id)

    renamed = client.put(f"/projects/{project_id}", json={"name": "New name"}, headers=headers)
    assert renamed.status_code == 200, renamed.text
    assert renamed.json()["data"]["name"] == "New name"

    current = client.get(f"/time-entries/{entry['id']}", headers=headers).json()["data"]
    assert current["projectName"] == "Old name"
