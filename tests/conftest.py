# tests/conftest.py
import os
import sys
import asyncio
import json
from urllib.parse import urlencode

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

sys.path.append(os.path.abspath("."))

# Settings are read once and cached, so the test environment goes in first.
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("MAIL_SUPPRESS_SEND", "true")
os.environ.setdefault("ADMIN_EMAIL", "shop@example.com")

from app.database import Base, get_db, enable_sqlite_foreign_keys
from app import crud, models, notifications
from app.auth import get_password_hash
from main import app


# DB (SQLite in-memory for tests)
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_foreign_keys(engine)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

ADMIN_EMAIL = "admin@jbfsport.com"
ADMIN_PASSWORD = "secret123"


@pytest.fixture(autouse=True)
def prepare_database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


# One event loop for the WHOLE pytest session
@pytest.fixture(scope="session")
def session_loop():
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    yield loop
    loop.close()


# Run FastAPI startup/shutdown once per session (same loop)
@pytest.fixture(scope="session", autouse=True)
def app_lifespan(session_loop):
    session_loop.run_until_complete(app.router.startup())
    yield
    session_loop.run_until_complete(app.router.shutdown())


class MailOutbox:
    """Replacement for the mail transport recording every delivery."""

    def __init__(self):
        self.sent = []
        self.fail_for: set[str] = set()

    async def deliver(self, message):
        first = message.recipients[0]
        recipient = str(getattr(first, "email", first))
        if recipient in self.fail_for:
            raise ConnectionRefusedError(f"SMTP refused {recipient}")
        self.sent.append(message)


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    box = MailOutbox()
    monkeypatch.setattr(notifications, "deliver", box.deliver)
    return box


# Simple ASGI response/client
class SimpleResponse:
    def __init__(
        self, status_code: int, body: bytes, headers: list[tuple[bytes, bytes]]
    ):
        self.status_code = status_code
        self._body = body
        self.headers = {k.decode(): v.decode() for k, v in headers}

    def json(self):
        return json.loads(self._body.decode())


class SimpleClient:
    """
    Important:
    - uses ONE shared session loop (passed from fixture)
    - does NOT call asyncio.run()
    - does NOT close the loop
    """

    def __init__(self, app, loop):
        self.app = app
        self.loop = loop

    def close(self):
        # do not close the loop here (session fixture closes it)
        pass

    def request(
        self,
        method: str,
        path: str,
        json_body=None,
        params=None,
        headers=None,
    ):
        headers = dict(headers or {})
        body_bytes = b""

        if json_body is not None:
            body_bytes = json.dumps(json_body).encode()
            headers.setdefault("content-type", "application/json")

        path, _, query = path.partition("?")
        if params:
            encoded = urlencode(
                {k: str(v).lower() if isinstance(v, bool) else v for k, v in params.items()}
            )
            query = f"{query}&{encoded}" if query else encoded

        raw_headers = [(k.lower().encode(), v.encode()) for k, v in headers.items()]
        scope = {
            "type": "http",
            "method": method.upper(),
            "path": path,
            "headers": raw_headers,
            "query_string": query.encode(),
            "client": ("testclient", 5000),
        }

        async def receive():
            nonlocal body_bytes
            chunk, body_bytes = body_bytes, b""
            return {"type": "http.request", "body": chunk, "more_body": False}

        response_body = bytearray()
        response_status = 500
        response_headers: list[tuple[bytes, bytes]] = []

        async def send(message):
            nonlocal response_status, response_headers
            if message["type"] == "http.response.start":
                response_status = message["status"]
                response_headers = message.get("headers", [])
            elif message["type"] == "http.response.body":
                response_body.extend(message.get("body", b""))

        # ensure the loop is the current one
        asyncio.set_event_loop(self.loop)
        self.loop.run_until_complete(self.app(scope, receive, send))
        return SimpleResponse(response_status, bytes(response_body), response_headers)

    def get(self, path: str, params=None, headers=None):
        return self.request("GET", path, params=params, headers=headers)

    def post(self, path: str, json=None, headers=None):
        return self.request("POST", path, json_body=json, headers=headers)

    def put(self, path: str, json=None, headers=None):
        return self.request("PUT", path, json_body=json, headers=headers)

    def delete(self, path: str, headers=None):
        return self.request("DELETE", path, headers=headers)


# Client fixture: override DB dependency per test
@pytest.fixture()
def client(db_session, session_loop):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    c = SimpleClient(app, loop=session_loop)
    try:
        yield c
    finally:
        app.dependency_overrides.clear()
        c.close()


@pytest.fixture()
def admin(db_session) -> models.AdminUser:
    return crud.create_admin(
        db_session, ADMIN_EMAIL, get_password_hash(ADMIN_PASSWORD), "Administrator"
    )


@pytest.fixture()
def auth_headers(client, admin) -> dict[str, str]:
    response = client.post(
        "/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
    )
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}
