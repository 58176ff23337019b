"""Entity store — the only code that touches persisted rows.

Wraps a single SQLAlchemy session. Methods flush but never commit; the
domain service decides where a unit of work ends. Nothing derived (counts,
remaining spots) is ever written here.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Optional

from sqlalchemy import String, func, insert, inspect, literal, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from event_scheduler.database import UTCDateTime, utcnow
from event_scheduler.errors import AlreadyExistsError, NotFoundError
from event_scheduler.models.attendance import Attendance
from event_scheduler.models.event import Event
from event_scheduler.models.user import User

logger = logging.getLogger(__name__)

# Columns callers may set through create_event / update_event
EVENT_FIELDS = ("title", "description", "date", "location", "max_attendees")


@dataclass
class EventFilter:
    organizer_id: Optional[str] = None
    starts_after: Optional[datetime] = None
    starts_before: Optional[datetime] = None
    limit: Optional[int] = None


class EntityStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    # ── Users ──────────────────────────────────────────────────────

    def get_user(self, user_id: str) -> User:
        user = self.db.query(User).filter(User.user_id == user_id).first()
        if not user:
            raise NotFoundError("User", user_id)
        return user

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()

    def list_users(self) -> list[User]:
        return self.db.query(User).order_by(User.created_at, User.name).all()

    def create_user(self, fields: dict[str, Any]) -> User:
        user = User(name=fields["name"], email=fields["email"])
        self.db.add(user)
        self.db.flush()
        return user

    # ── Events ─────────────────────────────────────────────────────

    def get_event(self, event_id: str) -> Event:
        event = self.db.query(Event).filter(Event.event_id == event_id).first()
        if not event:
            raise NotFoundError("Event", event_id)
        return event

    def lock_event(self, event_id: str) -> Event:
        """Re-read the event holding a row lock until the transaction ends.

        Renders SELECT ... FOR UPDATE on PostgreSQL. SQLite ignores it, so
        capacity-sensitive writes there rely on the conditional statements
        below, which check and write in one statement.
        """
        event = (
            self.db.query(Event)
            .filter(Event.event_id == event_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if not event:
            raise NotFoundError("Event", event_id)
        return event

    def list_events(self, filter: Optional[EventFilter] = None) -> list[Event]:
        filter = filter or EventFilter()
        query = self.db.query(Event)
        if filter.organizer_id:
            query = query.filter(Event.organizer_id == filter.organizer_id)
        if filter.starts_after:
            query = query.filter(Event.date >= filter.starts_after)
        if filter.starts_before:
            query = query.filter(Event.date <= filter.starts_before)
        query = query.order_by(Event.date, Event.created_at)
        if filter.limit:
            query = query.limit(filter.limit)
        return query.all()

    def create_event(self, fields: dict[str, Any]) -> Event:
        event = Event(
            organizer_id=fields["organizer_id"],
            **{name: fields.get(name) for name in EVENT_FIELDS},
        )
        self.db.add(event)
        self.db.flush()
        return event

    def update_event(self, event: Event, fields: dict[str, Any]) -> Event:
        for name, value in fields.items():
            if name in EVENT_FIELDS:
                setattr(event, name, value)
        self.db.flush()
        return event

    def delete_event(self, event: Event) -> int:
        """Delete an event and its attendance rows; returns rows removed."""
        removed = (
            self.db.query(Attendance)
            .filter(Attendance.event_id == event.event_id)
            .delete(synchronize_session=False)
        )
        self.db.delete(event)
        self.db.flush()
        return removed

    def set_capacity(self, event_id: str, max_attendees: Optional[int]) -> bool:
        """Change max_attendees unless the event already has more attendees.

        The attendee count is evaluated inside the UPDATE itself. Returns
        False when nothing was updated.
        """
        stmt = update(Event).where(Event.event_id == event_id)
        if max_attendees is not None:
            stmt = stmt.where(_attendee_count() <= max_attendees)
        result = self.db.execute(
            stmt.values(max_attendees=max_attendees).execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    # ── Attendance ─────────────────────────────────────────────────

    def add_attendance(self, user_id: str, event_id: str) -> None:
        """Insert the pair. Raises AlreadyExistsError if it is already there.

        A failed insert leaves the session rolled back.
        """
        self._insert_attendance(
            insert(Attendance).values(user_id=user_id, event_id=event_id), user_id, event_id
        )

    def add_attendance_within_capacity(self, user_id: str, event_id: str) -> bool:
        """Insert the pair only while the event has a free spot.

        Capacity is checked by the INSERT ... SELECT itself, so two writers
        can never both take the last spot, whichever process they run in.
        Returns False when the event is full or missing. Raises
        AlreadyExistsError if the pair is already there.
        """
        free_spot = (
            select(literal(user_id, String(36)), Event.event_id, literal(utcnow(), UTCDateTime()))
            .where(Event.event_id == event_id)
            .where(or_(Event.max_attendees.is_(None), _attendee_count() < Event.max_attendees))
        )
        stmt = insert(Attendance).from_select(["user_id", "event_id", "joined_at"], free_spot)
        return self._insert_attendance(stmt, user_id, event_id) == 1

    def _insert_attendance(self, stmt, user_id: str, event_id: str) -> int:
        try:
            return self.db.execute(stmt).rowcount
        except IntegrityError:
            self.db.rollback()
            if self.is_attending(user_id, event_id):
                logger.debug("Attendance %s/%s already present", user_id, event_id)
                raise AlreadyExistsError(f"User {user_id} already attends event {event_id}")
            raise

    def remove_attendance(self, user_id: str, event_id: str) -> bool:
        """Delete the pair in one statement; False when there was nothing to delete."""
        removed = (
            self.db.query(Attendance)
            .filter(Attendance.user_id == user_id, Attendance.event_id == event_id)
            .delete(synchronize_session=False)
        )
        return removed > 0

    def count_attendees(self, event_id: str) -> int:
        count = (
            self.db.query(func.count(Attendance.user_id))
            .filter(Attendance.event_id == event_id)
            .scalar()
        )
        return int(count or 0)

    def is_attending(self, user_id: str, event_id: str) -> bool:
        return (
            self.db.query(Attendance.user_id)
            .filter(Attendance.user_id == user_id, Attendance.event_id == event_id)
            .first()
        ) is not None

    def list_attendees(self, event_id: str) -> list[User]:
        self.get_event(event_id)
        return (
            self.db.query(User)
            .join(Attendance, Attendance.user_id == User.user_id)
            .filter(Attendance.event_id == event_id)
            .order_by(Attendance.joined_at)
            .all()
        )

    def list_organized_events(self, user_id: str) -> list[Event]:
        self.get_user(user_id)
        return (
            self.db.query(Event)
            .filter(Event.organizer_id == user_id)
            .order_by(Event.date)
            .all()
        )

    def list_attending_events(self, user_id: str) -> list[Event]:
        self.get_user(user_id)
        return (
            self.db.query(Event)
            .join(Attendance, Attendance.event_id == Event.event_id)
            .filter(Attendance.user_id == user_id)
            .order_by(Event.date)
            .all()
        )

    # ── Batched reads ──────────────────────────────────────────────
    # One statement per call however many ids are passed; list views use
    # these instead of the per-row lookups above.

    def count_attendees_by_event(self, event_ids: Iterable[str]) -> dict[str, int]:
        event_ids = list(event_ids)
        if not event_ids:
            return {}
        rows = (
            self.db.query(Attendance.event_id, func.count(Attendance.user_id))
            .filter(Attendance.event_id.in_(event_ids))
            .group_by(Attendance.event_id)
            .all()
        )
        counts = dict.fromkeys(event_ids, 0)
        counts.update({event_id: int(count) for event_id, count in rows})
        return counts

    def attending_event_ids(self, user_id: str, event_ids: Iterable[str]) -> set[str]:
        event_ids = list(event_ids)
        if not event_ids:
            return set()
        rows = (
            self.db.query(Attendance.event_id)
            .filter(Attendance.user_id == user_id, Attendance.event_id.in_(event_ids))
            .all()
        )
        return {event_id for (event_id,) in rows}

    def get_users_by_id(self, user_ids: Iterable[str]) -> dict[str, User]:
        user_ids = set(user_ids)
        if not user_ids:
            return {}
        return {u.user_id: u for u in self.db.query(User).filter(User.user_id.in_(user_ids)).all()}

    def attendees_by_event(self, event_ids: Iterable[str]) -> dict[str, list[User]]:
        """Attendees per event, each list in join order."""
        event_ids = list(event_ids)
        grouped: dict[str, list[User]] = {event_id: [] for event_id in event_ids}
        if not event_ids:
            return grouped
        rows = (
            self.db.query(Attendance.event_id, User)
            .join(User, User.user_id == Attendance.user_id)
            .filter(Attendance.event_id.in_(event_ids))
            .order_by(Attendance.joined_at)
            .all()
        )
        for event_id, user in rows:
            grouped[event_id].append(user)
        return grouped

    def organized_events_by_user(self, user_ids: Iterable[str]) -> dict[str, list[Event]]:
        user_ids = list(user_ids)
        grouped: dict[str, list[Event]] = {user_id: [] for user_id in user_ids}
        if not user_ids:
            return grouped
        events = (
            self.db.query(Event)
            .filter(Event.organizer_id.in_(user_ids))
            .order_by(Event.date)
            .all()
        )
        for event in events:
            grouped[event.organizer_id].append(event)
        return grouped

    def attending_events_by_user(self, user_ids: Iterable[str]) -> dict[str, list[Event]]:
        user_ids = list(user_ids)
        grouped: dict[str, list[Event]] = {user_id: [] for user_id in user_ids}
        if not user_ids:
            return grouped
        rows = (
            self.db.query(Attendance.user_id, Event)
            .join(Event, Event.event_id == Attendance.event_id)
            .filter(Attendance.user_id.in_(user_ids))
            .order_by(Event.date)
            .all()
        )
        for user_id, event in rows:
            grouped[user_id].append(event)
        return grouped

    # ── Housekeeping ───────────────────────────────────────────────

    def table_count(self) -> int:
        return len(inspect(self.db.get_bind()).get_table_names())


def _attendee_count():
    """Correlated COUNT(*) of attendances for the enclosing events row."""
    return (
        select(func.count(Attendance.user_id))
        .where(Attendance.event_id == Event.event_id)
        .correlate(Event)
        .scalar_subquery()
    )
