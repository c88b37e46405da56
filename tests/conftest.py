# tests/conftest.py

from __future__ import annotations

import os
import tempfile

# Settings are read at import time, so point them at throwaway resources first.
os.environ["TEAMTRACK_DATABASE_URL"] = "sqlite://"
os.environ["TEAMTRACK_BCRYPT_ROUNDS"] = "4"
os.environ["TEAMTRACK_LOG_DIR"] = tempfile.mkdtemp(prefix="teamtrack-logs-")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from Data import models  # noqa: E402,F401
from Data.database import Base, SessionLocal, engine  # noqa: E402
from Data.models import User  # noqa: E402
from presentation import app  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_database():
    """Every test starts from empty tables."""
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield


@pytest.fixture()
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def make_user(db):
    """Insert a user row directly, skipping password hashing."""

    def _make(username: str, name: str | None = None) -> User:
        user = User(username=username, name=name or username.title(),
                    password_hash="not-a-real-hash")
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture()
def client():
    """TestClient with the lifespan running, so app.state is populated."""
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def signup(client):
    """Register a user through the API; returns (user_id, auth headers)."""

    def _signup(username: str, name: str | None = None, password: str = "secret123"):
        resp = client.post(
            "/auth/signup",
            json={"username": username, "password": password,
                  "name": name or username.title()},
        )
        assert resp.status_code == 201, resp.text
        body = resp.json()
        return body["user_id"], {"Authorization": f"Bearer {body['token']}"}

    return _signup

