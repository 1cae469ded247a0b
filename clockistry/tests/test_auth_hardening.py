from dataclasses import replace
from datetime import datetime, timedelta, timezone

import jwt
from fastapi.testclient import TestClient

from clockistry.core.config import get_settings
from clockistry.main import app
from clockistry.services.auth_service import create_access_token

client = TestClient(app)


def _mint_token(user_id: int) -> str:
    r = client.post("/auth/token", json={"userId": user_id})
    assert r.status_code == 200, r.text
    return r.json()["data"]["accessToken"]


def test_missing_authorization_header_401():
    r = client.get("/time-entries")
    assert r.status_code == 401
    body = r.json()
    assert body["success"] is False
    assert body["error"] == "unauthenticated"


def test_wrong_scheme_401(company_factory, user_factory):
    user = user_factory(company_id=company_factory().id)
    token = _mint_token(user.id)
    r = client.get("/time-entries", headers={"Authorization": f"Basic {token}"})
    assert r.status_code == 401


def test_garbled_bearer_token_401():
    r = client.get("/time-entries", headers={"Authorization": "Bearer not-a-real-token"})
    assert r.status_code == 401
    assert r.headers.get("www-authenticate") == "Bearer"


def test_token_signed_with_another_key_401(company_factory, user_factory):
    user = user_factory(company_id=company_factory().id)
    now = datetime.now(timezone.utc)
    forged = jwt.encode(
        {"sub": str(user.id), "iat": now, "exp": now + timedelta(hours=1)},
        "another-secret-that-is-long-enough-000000000000",
        algorithm="HS256",
    )
    r = client.get("/time-entries", headers={"Authorization": f"Bearer {forged}"})
    assert r.status_code == 401


def test_expired_token_401(company_factory, user_factory):
    user = user_factory(company_id=company_factory().id)
    token = create_access_token(user_id=user.id, ttl=timedelta(seconds=-5))
    r = client.get("/time-entries", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


def test_token_for_inactive_user_401(company_factory, user_factory):
    user = user_factory(company_id=company_factory().id, is_active=False)
    token = create_access_token(user_id=user.id)
    r = client.get("/time-entries", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


def test_token_for_unknown_user_401():
    token = create_access_token(user_id=987654)
    r = client.get("/time-entries", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


def test_dev_token_endpoint_hidden_outside_dev(company_factory, user_factory):
    user = user_factory(company_id=company_factory().id)
    app.dependency_overrides[get_settings] = lambda: replace(get_settings(), env="production")

    r = client.post("/auth/token", json={"userId": user.id})
    assert r.status_code == 404
    assert r.json()["error"] == "not_found"


def test_health_needs_no_token():
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_unknown_route_uses_error_envelope():
    r = client.get("/no-such-route")
    assert r.status_code == 404
    assert r.json() == {"success": False, "error": "not_found", "message": "Not Found"}
