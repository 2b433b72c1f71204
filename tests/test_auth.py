import logging

import pytest
from fastapi.testclient import TestClient

from cashpot.config import Settings
from cashpot.models import User
from cashpot.security import create_access_token, decode_access_token, get_password_hash, verify_password


def test_password_hashing() -> None:
    hashed = get_password_hash("password")
    assert hashed != "password"
    assert verify_password("password", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("password", "not-a-bcrypt-hash")


def test_token_round_trip(test_settings) -> None:
    token = create_access_token({"sub": "7", "username": "admin", "role": "admin"}, settings=test_settings)
    payload = decode_access_token(token, settings=test_settings)
    assert payload["sub"] == "7"
    assert payload["exp"] - payload["iat"] == 24 * 3600
    assert decode_access_token(token + "x", settings=test_settings) is None


def test_login_with_username_or_email(client: TestClient, admin_user: User) -> None:
    for identifier in ("admin", "admin@cashpot.com"):
        resp = client.post("/api/auth/login", json={"username": identifier, "password": "password"})
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["token"]
        assert data["user"]["username"] == "admin"
        assert "password_hash" not in data["user"]


def test_login_rejects_bad_credentials(client: TestClient, admin_user: User) -> None:
    resp = client.post("/api/auth/login", json={"username": "admin", "password": "nope"})
    assert resp.status_code == 401
    assert resp.json()["error"]["message"] == "Invalid credentials"

    missing = client.post("/api/auth/login", json={"username": "admin"})
    assert missing.status_code == 400


def test_register_then_verify(client: TestClient) -> None:
    resp = client.post(
        "/api/auth/register",
        json={
            "username": "manager",
            "email": "manager@cashpot.com",
            "password": "secret123",
            "first_name": "Manager",
            "last_name": "Gaming",
        },
    )
    assert resp.status_code == 201
    token = resp.json()["data"]["token"]
    assert resp.json()["data"]["user"]["role"] == "user"

    verify = client.get("/api/auth/verify", headers={"Authorization": f"Bearer {token}"})
    assert verify.status_code == 200
    assert verify.json()["data"]["user"]["email"] == "manager@cashpot.com"


def test_register_duplicate_is_rejected(client: TestClient, admin_user: User) -> None:
    resp = client.post(
        "/api/auth/register",
        json={
            "username": "admin",
            "email": "other@cashpot.com",
            "password": "secret123",
            "first_name": "A",
            "last_name": "B",
        },
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "User already exists"


def test_verify_requires_valid_token(client: TestClient) -> None:
    assert client.get("/api/auth/verify").status_code == 401
    bad = client.get("/api/auth/verify", headers={"Authorization": "Bearer garbage"})
    assert bad.status_code == 401
    assert bad.json()["error"]["message"] == "Invalid token"


def test_verify_rejects_token_without_numeric_subject(client: TestClient, test_settings: Settings) -> None:
    token = create_access_token({"sub": "admin", "role": "admin"}, settings=test_settings)
    resp = client.get("/api/auth/verify", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json()["error"]["message"] == "Invalid token"


def test_request_and_auth_logs_use_module_loggers(client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO):
        resp = client.post("/api/auth/login", json={"username": "ghost", "password": "secret"})
    assert resp.status_code == 401
    loggers = {record.name for record in caplog.records}
    assert {"cashpot.main", "cashpot.auth"} <= loggers
