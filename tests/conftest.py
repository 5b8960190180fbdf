# tests/conftest.py
# PURPOSE: TestClient wired to a temp SQLite file via the get_db override,
# plus helpers to register users and fake live channels.

# Ensure project root is on sys.path so `import tasktracker` works when running pytest.
import sys, os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

# Settings are read at import time: keep tests off the dev database and fast.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DB_AUTO_CREATE", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from tasktracker.db import Base, get_db  # DB metadata + dependency to override
from tasktracker import db_models  # noqa: F401
from tasktracker.main import app  # FastAPI app
from tasktracker.rate_limit import limiter


@pytest.fixture()
def db_engine(tmp_path):
    # A fresh SQLite file per test keeps data isolated
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}", connect_args={"check_same_thread": False}
    )

    @event.listens_for(engine, "connect")
    def _fk_on(dbapi_conn, _record):
        dbapi_conn.execute("PRAGMA foreign_keys=ON")

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture()
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    limiter.reset()

    # Context manager runs the lifespan: registry, token issuer, hasher
    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture()
def register(client):
    """Register a user; return (auth headers, response JSON)."""

    def _register(email: str, password: str = "secret-123", name: str = "Tester"):
        r = client.post("/register", json={"email": email, "password": password, "name": name})
        assert r.status_code == 200, r.text
        body = r.json()
        return {"Authorization": f"Bearer {body['token']}"}, body

    return _register


class FakeChannel:
    """In-memory live channel: records frames, can be told to refuse them."""

    def __init__(self, accept: bool = True):
        self.accept = accept
        self.frames = []
        self.closed = False

    def offer(self, frame):
        if self.closed or not self.accept:
            return False
        self.frames.append(frame)
        return True

    def close(self):
        self.closed = True


@pytest.fixture()
def fake_channel():
    return FakeChannel
