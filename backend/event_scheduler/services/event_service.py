"""Core event service — enforces the event/attendance invariants.

Responsibilities:
- Capacity: attendance rows for an event never exceed max_attendees
- Idempotent join / cancel over the attendance set
- Capacity checked by the storage in the same statement that writes the row
- Bounded retry of transient storage contention
- Organizer-only update / delete, capacity never shrunk below current attendance
"""
import enum
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional, TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from event_scheduler.config import settings
from event_scheduler.database import to_utc, utcnow
from event_scheduler.errors import (
    AlreadyExistsError,
    ConflictError,
    ContentionError,
    EventClosedError,
    EventFullError,
    ForbiddenError,
    ValidationError,
)
from event_scheduler.models.event import Event
from event_scheduler.models.user import User
from event_scheduler.services import query_service
from event_scheduler.services.entity_store import EVENT_FIELDS, EntityStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RsvpOutcome(str, enum.Enum):
    joined = "joined"
    already_attending = "already_attending"
    cancelled = "cancelled"
    not_attending = "not_attending"


RSVP_MESSAGES = {
    RsvpOutcome.joined: "Successfully registered for event",
    RsvpOutcome.already_attending: "You are already registered for this event",
    RsvpOutcome.cancelled: "Successfully cancelled registration",
    RsvpOutcome.not_attending: "You were not registered for this event",
}


@dataclass
class RsvpResult:
    outcome: RsvpOutcome
    event: Event
    user: User
    attendee_count: int
    available_spots: Optional[int]

    @property
    def message(self) -> str:
        return RSVP_MESSAGES[self.outcome]


def _run_with_retries(db: Session, action: str, unit_of_work: Callable[[], T]) -> T:
    """Run a write, retrying transient contention a bounded number of times."""
    attempts = max(1, settings.RSVP_MAX_RETRIES)
    for attempt in range(1, attempts + 1):
        try:
            return unit_of_work()
        except OperationalError as exc:
            db.rollback()
            if attempt == attempts:
                logger.error("%s gave up after %d attempts: %s", action, attempts, exc)
                raise ContentionError("The event is busy, please try again") from exc
            logger.warning("%s hit contention (attempt %d/%d), retrying", action, attempt, attempts)
            time.sleep(settings.RSVP_RETRY_BACKOFF_SECONDS * attempt)
        except Exception:
            db.rollback()
            raise
    raise AssertionError("unreachable")


def _check_capacity(store: EntityStore, event: Event) -> None:
    if event.max_attendees is None:
        return
    if store.count_attendees(event.event_id) >= event.max_attendees:
        raise EventFullError(event.event_id)


def _check_rsvp_window(event: Event) -> None:
    """Past events are joinable unless ALLOW_PAST_EVENT_RSVP is switched off."""
    if settings.ALLOW_PAST_EVENT_RSVP:
        return
    if event.date < utcnow():
        raise EventClosedError(event.event_id)


def _result(store: EntityStore, outcome: RsvpOutcome, event: Event, user: User) -> RsvpResult:
    count = store.count_attendees(event.event_id)
    return RsvpResult(
        outcome=outcome,
        event=event,
        user=user,
        attendee_count=count,
        available_spots=query_service.available_spots(event, count),
    )


def join_event(db: Session, user_id: str, event_id: str) -> RsvpResult:
    """RSVP a user to an event.

    Raises NotFoundError, EventFullError, EventClosedError or ContentionError.
    Joining an event the user already attends is a successful no-op.
    """
    store = EntityStore(db)
    user = store.get_user(user_id)
    event = store.get_event(event_id)

    if store.is_attending(user_id, event_id):
        return _result(store, RsvpOutcome.already_attending, event, user)

    _check_rsvp_window(event)
    # Early rejection only; the insert re-checks capacity itself.
    _check_capacity(store, event)

    def _insert() -> RsvpOutcome:
        # Row lock serializes joins per event on PostgreSQL
        store.lock_event(event_id)
        if store.is_attending(user_id, event_id):
            db.rollback()
            return RsvpOutcome.already_attending
        try:
            inserted = store.add_attendance_within_capacity(user_id, event_id)
        except AlreadyExistsError:
            return RsvpOutcome.already_attending
        if not inserted:
            raise EventFullError(event_id)
        db.commit()
        return RsvpOutcome.joined

    outcome = _run_with_retries(db, f"join event {event_id}", _insert)
    if outcome is RsvpOutcome.joined:
        logger.info("User %s joined event %s", user_id, event_id)
    return _result(store, outcome, event, user)


def cancel_rsvp(db: Session, user_id: str, event_id: str) -> RsvpResult:
    """Withdraw a user's RSVP. Cancelling a missing RSVP is a successful no-op."""
    store = EntityStore(db)
    user = store.get_user(user_id)
    event = store.get_event(event_id)

    def _delete() -> RsvpOutcome:
        removed = store.remove_attendance(user_id, event_id)
        db.commit()
        return RsvpOutcome.cancelled if removed else RsvpOutcome.not_attending

    outcome = _run_with_retries(db, f"cancel rsvp on event {event_id}", _delete)
    if outcome is RsvpOutcome.cancelled:
        logger.info("User %s cancelled RSVP to event %s", user_id, event_id)
    return _result(store, outcome, event, user)


# ── Event / user lifecycle ─────────────────────────────────────────


def _require_text(fields: dict[str, Any], name: str, label: str) -> str:
    value = fields.get(name)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label} is required", field=name)
    return value.strip()


def _clean_event_fields(fields: dict[str, Any], partial: bool = False) -> dict[str, Any]:
    """Validate event input. With partial=True only keys present are checked."""
    cleaned: dict[str, Any] = {}
    for name, label in (("title", "Title"), ("description", "Description"), ("location", "Location")):
        if not partial or name in fields:
            cleaned[name] = _require_text(fields, name, label)

    if not partial or "date" in fields:
        date = fields.get("date")
        if isinstance(date, str):
            try:
                date = datetime.fromisoformat(date)
            except ValueError:
                raise ValidationError("Date must be an ISO 8601 date-time", field="date")
        if not isinstance(date, datetime):
            raise ValidationError("Date is required", field="date")
        cleaned["date"] = to_utc(date)

    if "max_attendees" in fields:
        capacity = fields["max_attendees"]
        if capacity is not None and (
            isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1
        ):
            raise ValidationError("Maximum attendees must be at least 1", field="max_attendees")
        cleaned["max_attendees"] = capacity

    return {name: value for name, value in cleaned.items() if name in EVENT_FIELDS}


def _check_authorization(event: Event, actor_user_id: str) -> None:
    """Only the organizer may update or delete an event."""
    if event.organizer_id != actor_user_id:
        raise ForbiddenError("Only the organizer may modify this event")


def create_event(db: Session, organizer_id: str, fields: dict[str, Any]) -> Event:
    """Create an event. Past dates are accepted."""
    store = EntityStore(db)
    store.get_user(organizer_id)
    cleaned = _clean_event_fields(fields)
    cleaned.setdefault("max_attendees", None)

    event = store.create_event({"organizer_id": organizer_id, **cleaned})
    db.commit()
    db.refresh(event)
    logger.info(
        "Created event '%s' (%s) by organizer %s, capacity %s",
        event.title, event.event_id, organizer_id, event.max_attendees,
    )
    return event


def update_event(db: Session, event_id: str, actor_user_id: str, updates: dict[str, Any]) -> Event:
    """Update an event's details (organizer only).

    The organizer itself is never changed. Lowering max_attendees below the
    current attendee count is rejected. The comparison happens inside the
    UPDATE, so a concurrent join cannot overshoot the new capacity.
    """
    store = EntityStore(db)
    event = store.get_event(event_id)
    store.get_user(actor_user_id)
    _check_authorization(event, actor_user_id)
    cleaned = _clean_event_fields(updates, partial=True)
    details = {name: value for name, value in cleaned.items() if name != "max_attendees"}

    def _apply() -> Event:
        locked = store.lock_event(event_id)
        if "max_attendees" in cleaned and not store.set_capacity(event_id, cleaned["max_attendees"]):
            count = store.count_attendees(event_id)
            raise ValidationError(
                f"Maximum attendees cannot be lower than the current attendee count ({count})",
                field="max_attendees",
            )
        store.update_event(locked, details)
        db.commit()
        return locked

    event = _run_with_retries(db, f"update event {event_id}", _apply)
    db.refresh(event)
    logger.info("Updated event %s fields %s", event_id, sorted(cleaned))
    return event


def delete_event(db: Session, event_id: str, actor_user_id: str) -> None:
    """Delete an event and every RSVP to it (organizer only)."""
    store = EntityStore(db)
    event = store.get_event(event_id)
    store.get_user(actor_user_id)
    _check_authorization(event, actor_user_id)

    def _delete() -> int:
        locked = store.lock_event(event_id)
        removed = store.delete_event(locked)
        db.commit()
        return removed

    removed = _run_with_retries(db, f"delete event {event_id}", _delete)
    logger.info("Deleted event %s and %d RSVPs", event_id, removed)


def create_user(db: Session, fields: dict[str, Any]) -> User:
    store = EntityStore(db)
    name = _require_text(fields, "name", "Name")
    email = _require_text(fields, "email", "Email").lower()
    if "@" not in email:
        raise ValidationError("Email must be a valid address", field="email")
    if store.get_user_by_email(email):
        raise ConflictError(f"A user with email {email} already exists")

    try:
        user = store.create_user({"name": name, "email": email})
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(f"A user with email {email} already exists")
    db.refresh(user)
    logger.info("Created user %s (%s)", user.user_id, user.name)
    return user
