from datetime import datetime, timedelta, timezone

import pytest
from fastapi import status
from fakeredis.aioredis import FakeRedis
from fastapi_limiter import FastAPILimiter
from jose import jwt

import main
from app import auth, crud
from app.auth import (
    SessionSubject,
    get_password_hash,
    issue_token,
    validate_token,
    verify_password,
)
from app.core import get_settings
from app.errors import AuthError, Conflict


SUBJECT = SessionSubject(id="admin-1", email="admin@example.com", name="Admin")


def test_password_hashing_roundtrip():
    password = "secret123"
    hashed = get_password_hash(password)
    assert hashed != password
    assert verify_password(password, hashed)
    assert not verify_password("wrong", hashed)


def test_token_valid_until_expiry():
    issued = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
    token = issue_token(SUBJECT, now=issued)

    assert validate_token(token, now=issued) == SUBJECT
    assert validate_token(token, now=issued + timedelta(hours=23, minutes=59)) == SUBJECT
    assert validate_token(token, now=issued + timedelta(hours=24)) is None
    assert validate_token(token, now=issued + timedelta(days=3)) is None


def test_token_window_with_fractional_issue_time():
    issued = datetime(2026, 1, 1, 12, 0, 0, 700000, tzinfo=timezone.utc)
    token = issue_token(SUBJECT, now=issued)
    expiry = issued + timedelta(hours=24)

    assert validate_token(token, now=expiry - timedelta(milliseconds=300)) == SUBJECT
    assert validate_token(token, now=expiry) is None


@pytest.mark.parametrize(
    "token",
    ["", "not-a-token", "a.b.c"],
)
def test_malformed_token_is_invalid(token):
    assert validate_token(token) is None


def test_token_signed_with_other_secret_is_invalid():
    settings = get_settings()
    claims = {
        "sub": SUBJECT.id,
        "email": SUBJECT.email,
        "name": SUBJECT.name,
        "exp": int((datetime.now(timezone.utc) + timedelta(hours=1)).timestamp()),
        "scope": "access",
    }
    forged = jwt.encode(claims, "another-secret", algorithm=settings.ALGORITHM)
    assert validate_token(forged) is None


def test_token_without_expiry_is_invalid():
    settings = get_settings()
    claims = {"sub": SUBJECT.id, "email": SUBJECT.email, "name": SUBJECT.name, "scope": "access"}
    token = jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    assert validate_token(token) is None


def test_login_returns_token_and_admin(client, admin):
    response = client.post(
        "/auth/login", json={"email": "admin@jbfsport.com", "password": "secret123"}
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["success"] is True
    assert data["admin"] == {
        "id": admin.id,
        "email": "admin@jbfsport.com",
        "name": "Administrator",
    }
    assert validate_token(data["token"]) == SessionSubject(
        id=admin.id, email=admin.email, name=admin.name
    )

    me_resp = client.get(
        "/auth/me", headers={"Authorization": f"Bearer {data['token']}"}
    )
    assert me_resp.status_code == status.HTTP_200_OK
    assert me_resp.json()["email"] == "admin@jbfsport.com"


def test_login_email_is_case_insensitive(client, admin):
    response = client.post(
        "/auth/login", json={"email": "Admin@JBFSport.com", "password": "secret123"}
    )
    assert response.status_code == status.HTTP_200_OK


def test_login_failures_are_indistinguishable(client, admin):
    wrong_password = client.post(
        "/auth/login", json={"email": "admin@jbfsport.com", "password": "nope"}
    )
    unknown_email = client.post(
        "/auth/login", json={"email": "ghost@jbfsport.com", "password": "secret123"}
    )
    assert wrong_password.status_code == status.HTTP_401_UNAUTHORIZED
    assert unknown_email.status_code == status.HTTP_401_UNAUTHORIZED
    assert wrong_password.json() == unknown_email.json()
    assert wrong_password.json()["error"] == "auth_error"


def test_login_malformed_body(client):
    response = client.post("/auth/login", json={"email": "not-an-email"})
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    body = response.json()
    assert body["error"] == "validation_error"
    fields = {detail["field"] for detail in body["details"]}
    assert {"email", "password"} <= fields


def test_gate_rejects_missing_credential(client):
    response = client.get("/contacts")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {"error": "auth_error", "message": "Missing credential"}


def test_gate_rejects_invalid_credential(client):
    response = client.get("/contacts", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["message"] == "Invalid credential"


def test_gate_rejects_expired_token(client, admin):
    issued = datetime.now(timezone.utc) - timedelta(hours=25)
    token = issue_token(SessionSubject.from_model(admin), now=issued)
    response = client.get("/contacts", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["message"] == "Invalid credential"


def test_admin_email_is_unique(db_session, admin):
    with pytest.raises(Conflict):
        crud.create_admin(db_session, "ADMIN@jbfsport.com", "hash", "Other")


def test_unknown_email_still_compares_a_hash(db_session, admin, monkeypatch):
    compared = []
    real_verify = auth.verify_password

    def recording_verify(plain, hashed):
        compared.append(hashed)
        return real_verify(plain, hashed)

    monkeypatch.setattr(auth, "verify_password", recording_verify)
    with pytest.raises(AuthError):
        auth.authenticate_admin(db_session, "ghost@jbfsport.com", "secret123")

    assert len(compared) == 1
    assert compared[0] != admin.hashed_password


@pytest.fixture()
def login_limiter(monkeypatch, session_loop):
    settings = get_settings()
    monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", True)
    monkeypatch.setattr(settings, "LOGIN_RATE_LIMIT_TIMES", 2)
    # Nothing listens here, so startup falls back to the in-process backend.
    monkeypatch.setattr(settings, "REDIS_URL", "redis://127.0.0.1:1/0")
    monkeypatch.setattr(FastAPILimiter, "redis", None)
    session_loop.run_until_complete(main.startup_event())
    yield FastAPILimiter.redis
    session_loop.run_until_complete(main.shutdown_event())


def test_login_is_throttled(client, admin, login_limiter):
    assert isinstance(login_limiter, FakeRedis)

    for _ in range(2):
        response = client.post(
            "/auth/login", json={"email": "admin@jbfsport.com", "password": "nope"}
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    throttled = client.post(
        "/auth/login", json={"email": "admin@jbfsport.com", "password": "secret123"}
    )
    assert throttled.status_code == status.HTTP_429_TOO_MANY_REQUESTS
    assert throttled.json()["error"] == "rate_limited"
