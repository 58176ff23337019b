"""FastAPI application entry point."""
import logging
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from event_scheduler.config import settings
from event_scheduler.database import Base, engine, get_db
from event_scheduler.errors import (
    ConflictError,
    ContentionError,
    DomainError,
    EventClosedError,
    EventFullError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from event_scheduler.services import migration_service
from event_scheduler.services.entity_store import EntityStore

# Import routers
from event_scheduler.routers import users, events, rsvp

# Import all models so Base.metadata knows about them
from event_scheduler.models.user import User  # noqa: F401
from event_scheduler.models.event import Event  # noqa: F401
from event_scheduler.models.attendance import Attendance  # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "0.1.0"

app = FastAPI(
    title="Event Scheduler",
    description="Publish events with a capacity limit and RSVP to them",
    version=VERSION,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(events.router, prefix="/api/events", tags=["Events"])
app.include_router(rsvp.router, prefix="/api/rsvp", tags=["RSVP"])


# Domain error -> HTTP status. Order matters: first isinstance match wins.
ERROR_STATUS = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
    (ConflictError, status.HTTP_409_CONFLICT),
    (EventFullError, status.HTTP_409_CONFLICT),
    (EventClosedError, status.HTTP_409_CONFLICT),
    (ContentionError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    code = next((c for cls, c in ERROR_STATUS if isinstance(exc, cls)), status.HTTP_400_BAD_REQUEST)
    body: dict = {"detail": exc.message}
    if isinstance(exc, ValidationError) and exc.field:
        body["field"] = exc.field
    if code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=code, content=body)


@app.on_event("startup")
def on_startup():
    """Create database tables on startup (for SQLite dev mode)."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)


@app.get("/api/health")
def health_check():
    return {
        "status": "ok",
        "version": VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/api/health/db")
def db_status(db: Session = Depends(get_db)):
    """Database connectivity and table count."""
    try:
        db.execute(text("SELECT 1"))
        table_count = EntityStore(db).table_count()
    except SQLAlchemyError as exc:
        logger.error("Database health check failed: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"connected": False, "healthy": False, "error": type(exc).__name__},
        )
    return {
        "connected": True,
        "healthy": True,
        "dialect": db.get_bind().dialect.name,
        "table_count": table_count,
    }


@app.get("/api/health/migrations")
def migrations_status(db: Session = Depends(get_db)):
    """Applied and pending Alembic revisions."""
    try:
        return migration_service.migration_status(db.connection())
    except SQLAlchemyError as exc:
        logger.error("Migration status check failed: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"error": type(exc).__name__},
        )
