"""Pytest fixtures: a file-backed SQLite database, recreated for every test."""
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone, timedelta
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from event_scheduler.database import Base, enable_sqlite_foreign_keys, get_db
from event_scheduler.main import app

# Import all models so they register with Base.metadata
from event_scheduler.models.user import User              # noqa: F401
from event_scheduler.models.event import Event            # noqa: F401
from event_scheduler.models.attendance import Attendance  # noqa: F401

SQLITE_URL = "sqlite:///./test.db"


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})

    # WAL lets readers run while one writer commits (concurrency tests)
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    enable_sqlite_foreign_keys(engine)
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Session factory for tests that need one session per thread."""
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory):
    """Yield a database session, closed after the test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(session_factory):
    """FastAPI TestClient with the database dependency overridden to use SQLite."""

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers: create entities via the API, return the JSON response dict
# ---------------------------------------------------------------------------
def create_test_user(client: TestClient, name: str = "Test User", email: str = None) -> dict:
    """POST /api/users and return the response JSON."""
    if email is None:
        email = f"{name.lower().replace(' ', '.')}.{uuid.uuid4().hex[:8]}@example.com"
    resp = client.post("/api/users/", json={"name": name, "email": email})
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_test_event(client: TestClient, organizer_id: str, title: str = "Test Event",
                      max_attendees: int = None, days_from_now: float = 7, **extra) -> dict:
    """POST /api/events and return the response JSON."""
    resp = client.post("/api/events/", json=event_payload(
        organizer_id, title=title, max_attendees=max_attendees,
        days_from_now=days_from_now, **extra,
    ))
    assert resp.status_code == 201, resp.text
    return resp.json()


def event_payload(organizer_id: str, title: str = "Test Event", max_attendees: int = None,
                  days_from_now: float = 7, **extra) -> dict:
    date = datetime.now(timezone.utc) + timedelta(days=days_from_now)
    payload = {
        "organizer_id": organizer_id,
        "title": title,
        "description": "A test event",
        "date": date.isoformat(),
        "location": "Room 101",
        "max_attendees": max_attendees,
    }
    payload.update(extra)
    return payload


def rsvp(client: TestClient, event_id: str, user_id: str):
    return client.post("/api/rsvp", json={"event_id": event_id, "user_id": user_id})


def cancel(client: TestClient, event_id: str, user_id: str):
    return client.post("/api/rsvp/cancel", json={"event_id": event_id, "user_id": user_id})


@contextmanager
def count_statements(engine):
    """Collect every SQL statement the engine sends while the block runs."""
    statements = []

    def _record(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    event.listen(engine, "before_cursor_execute", _record)
    try:
        yield statements
    finally:
        event.remove(engine, "before_cursor_execute", _record)
