"""Application configuration via environment variables."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """App settings loaded from .env or environment."""

    DATABASE_URL: str = "sqlite:///./event_scheduler.db"
    CORS_ORIGINS: str = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    # RSVP concurrency knobs
    RSVP_MAX_RETRIES: int = 3
    RSVP_RETRY_BACKOFF_SECONDS: float = 0.05
    # How long a SQLite connection waits on another writer before failing
    DB_BUSY_TIMEOUT_SECONDS: float = 5.0

    # Whether users may RSVP to events whose date has already passed
    ALLOW_PAST_EVENT_RSVP: bool = True

    UPCOMING_EVENTS_LIMIT: int = 10

    class Config:
        env_file = ".env"


settings = Settings()
