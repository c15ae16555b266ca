from __future__ import annotations

from fastapi.testclient import TestClient
from jose import jwt

from blogsub.core.config import get_settings
from blogsub.models import User


def test_register_issues_tokens(client: TestClient) -> None:
    response = client.post(
        "/api/auth/register",
        json={"name": "New Reader", "email": "New@Example.com", "password": "secret1"},
    )

    assert response.status_code == 201
    settings = get_settings()
    claims = jwt.decode(
        response.json()["access_token"], settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]
    )
    assert claims["role"] == "user"
    assert claims["type"] == "access"

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {response.json()['access_token']}"})
    assert me.json()["email"] == "new@example.com"
    assert me.json()["subscription_status"] == "free"


def test_register_duplicate_email(client: TestClient, member: User) -> None:
    response = client.post(
        "/api/auth/register",
        json={"name": "Again", "email": member.email, "password": "secret1"},
    )
    assert response.status_code == 409


def test_login_with_bad_password(client: TestClient, member: User) -> None:
    response = client.post("/api/auth/login", json={"email": member.email, "password": "wrong-password"})
    assert response.status_code == 401


def test_refresh_rotates_and_revokes(client: TestClient, member: User) -> None:
    login = client.post("/api/auth/login", json={"email": member.email, "password": "changeme"}).json()

    refreshed = client.post("/api/auth/refresh", json={"refresh_token": login["refresh_token"]})
    assert refreshed.status_code == 200
    assert refreshed.json()["refresh_token"] != login["refresh_token"]

    reused = client.post("/api/auth/refresh", json={"refresh_token": login["refresh_token"]})
    assert reused.status_code == 401


def test_access_token_cannot_refresh(client: TestClient, member_headers: dict[str, str]) -> None:
    token = member_headers["Authorization"].removeprefix("Bearer ")
    response = client.post("/api/auth/refresh", json={"refresh_token": token})
    assert response.status_code == 400


def test_tampered_token_is_rejected(client: TestClient, member_headers: dict[str, str]) -> None:
    headers = {"Authorization": member_headers["Authorization"] + "x"}
    assert client.get("/api/auth/me", headers=headers).status_code == 401


def test_health_endpoints(client: TestClient) -> None:
    assert client.get("/api/healthz").json()["status"] == "ok"
    assert client.get("/api/readyz").json()["status"] == "ready"
