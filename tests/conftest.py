import os

# Must be set before connect_db creates the engine.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["STREAM_API_KEY"] = ""
os.environ["STREAM_API_SECRET"] = ""

import pytest
from fastapi.testclient import TestClient

from connect_db import Base, SessionLocal, engine
from core.dependencies import get_mailer, get_realtime_delegate
from core.security import get_password_hash
from main import app
from models.models import User
from services.chat_service import RealtimeDelegate

DEFAULT_PASSWORD = "secret1"


class FakeRealtimeDelegate(RealtimeDelegate):
    """In-memory stand-in for the Stream service."""

    def __init__(self):
        self.users = {}
        self.fail_upsert = False
        self.fail_token = False

    async def upsert_user(self, user_id, name, image=None):
        if self.fail_upsert:
            raise RuntimeError("stream unavailable")
        self.users[user_id] = {"id": user_id, "name": name, "image": image}

    def create_token(self, user_id):
        if self.fail_token:
            raise RuntimeError("stream unavailable")
        return f"stream-token-{user_id}"


class FakeMailer:
    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, to, subject, html):
        if self.fail:
            raise OSError("smtp unavailable")
        self.sent.append({"to": to, "subject": subject, "html": html})


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def delegate():
    return FakeRealtimeDelegate()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def make_user(db):
    """Insert a user directly, skipping the signup flow."""
    counter = {"n": 0}
    password_hash = get_password_hash(DEFAULT_PASSWORD)

    def _make_user(full_name=None, email=None, is_onboarded=True, **fields):
        counter["n"] += 1
        user = User(
            email=email or f"user{counter['n']}@example.com",
            full_name=full_name or f"User {counter['n']}",
            hashed_password=password_hash,
            is_onboarded=is_onboarded,
            native_language=fields.pop("native_language", "english"),
            learning_language=fields.pop("learning_language", "spanish"),
            **fields
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def client_factory(db, delegate, mailer):
    """Build TestClients with their own cookie jars (one per signed-in user)."""
    app.dependency_overrides[get_realtime_delegate] = lambda: delegate
    app.dependency_overrides[get_mailer] = lambda: mailer
    clients = []

    def _client():
        client = TestClient(app)
        clients.append(client)
        return client

    yield _client

    for client in clients:
        client.close()
    app.dependency_overrides.clear()


@pytest.fixture
def client(client_factory):
    return client_factory()


@pytest.fixture
def login(client_factory):
    """Return a client signed in as the given email."""

    def _login(email, password=DEFAULT_PASSWORD):
        client = client_factory()
        response = client.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return client

    return _login
