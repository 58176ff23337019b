"""SQLAlchemy engine, session factory and shared column types."""
from datetime import datetime

import pytz
from sqlalchemy import DateTime, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.types import TypeDecorator

from event_scheduler.config import settings

Base = declarative_base()


class UTCDateTime(TypeDecorator):
    """DateTime column that always hands back timezone-aware UTC values.

    SQLite drops tzinfo on the way in, so everything is normalized to UTC
    before binding and re-stamped with UTC on the way out. Naive inputs are
    taken to already be UTC.
    """

    impl = DateTime
    cache_ok = True

    def __init__(self):
        super().__init__(timezone=True)

    def process_bind_param(self, value: datetime | None, dialect):
        if value is None:
            return None
        return to_utc(value)

    def process_result_value(self, value: datetime | None, dialect):
        if value is None:
            return None
        return to_utc(value)


def to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return pytz.utc.localize(value)
    return value.astimezone(pytz.utc)


def utcnow() -> datetime:
    return datetime.now(pytz.utc)


def enable_sqlite_foreign_keys(engine: Engine) -> None:
    """SQLite ships with FK enforcement off; turn it on for every connection."""

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def _make_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": settings.DB_BUSY_TIMEOUT_SECONDS},
        )
        enable_sqlite_foreign_keys(engine)
        return engine
    return create_engine(url, pool_pre_ping=True)


engine = _make_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """FastAPI dependency: one session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
