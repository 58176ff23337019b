"""Query resolution — derived event/user fields computed on every read.

Nothing here is cached or written back: attendee_count and available_spots
always come straight from the attendance relation. Views over several rows
load counts, organizers and attendees with one batched query each, so the
number of statements a list read issues does not grow with its length.
"""
from typing import Any, Optional

from sqlalchemy.orm import Session

from event_scheduler.config import settings
from event_scheduler.database import utcnow
from event_scheduler.models.event import Event
from event_scheduler.models.user import User
from event_scheduler.services.entity_store import EntityStore, EventFilter


def available_spots(event: Event, attendee_count: int) -> Optional[int]:
    """Remaining capacity, or None for an event without a limit. Never negative."""
    if event.max_attendees is None:
        return None
    return max(0, event.max_attendees - attendee_count)


def _user_summary(user: User) -> dict[str, Any]:
    return {
        "user_id": user.user_id,
        "name": user.name,
        "email": user.email,
        "created_at": user.created_at,
        "updated_at": user.updated_at,
    }


def _event_summary(event: Event, count: int, is_user_attending: Optional[bool] = None) -> dict[str, Any]:
    return {
        "event_id": event.event_id,
        "title": event.title,
        "description": event.description,
        "date": event.date,
        "location": event.location,
        "max_attendees": event.max_attendees,
        "organizer_id": event.organizer_id,
        "created_at": event.created_at,
        "updated_at": event.updated_at,
        "attendee_count": count,
        "available_spots": available_spots(event, count),
        "is_user_attending": is_user_attending,
    }


def _event_summaries(
    store: EntityStore,
    events: list[Event],
    viewer_id: Optional[str] = None,
    counts: Optional[dict[str, int]] = None,
) -> list[dict[str, Any]]:
    event_ids = [e.event_id for e in events]
    if counts is None:
        counts = store.count_attendees_by_event(event_ids)
    attending = store.attending_event_ids(viewer_id, event_ids) if viewer_id else set()
    return [
        _event_summary(e, counts[e.event_id], (e.event_id in attending) if viewer_id else None)
        for e in events
    ]


def _event_views(store: EntityStore, events: list[Event], viewer_id: Optional[str] = None) -> list[dict[str, Any]]:
    """Full event shape: summary plus organizer and attendee list."""
    views = _event_summaries(store, events, viewer_id)
    organizers = store.get_users_by_id(e.organizer_id for e in events)
    attendees = store.attendees_by_event(e.event_id for e in events)
    for view, event in zip(views, events):
        view["organizer"] = _user_summary(organizers[event.organizer_id])
        view["attendees"] = [_user_summary(u) for u in attendees[event.event_id]]
    return views


def event_view(store: EntityStore, event: Event, viewer_id: Optional[str] = None) -> dict[str, Any]:
    return _event_views(store, [event], viewer_id)[0]


def _user_views(
    store: EntityStore,
    users: list[User],
    organized: dict[str, list[Event]],
    attending: dict[str, list[Event]],
) -> list[dict[str, Any]]:
    referenced = {
        e.event_id for grouped in (organized, attending) for events in grouped.values() for e in events
    }
    counts = store.count_attendees_by_event(referenced)
    views = []
    for user in users:
        view = _user_summary(user)
        view["organized_events"] = _event_summaries(store, organized[user.user_id], counts=counts)
        view["attending_events"] = _event_summaries(store, attending[user.user_id], counts=counts)
        views.append(view)
    return views


def user_view(store: EntityStore, user: User) -> dict[str, Any]:
    organized = {user.user_id: store.list_organized_events(user.user_id)}
    attending = {user.user_id: store.list_attending_events(user.user_id)}
    return _user_views(store, [user], organized, attending)[0]


# ── Queries ────────────────────────────────────────────────────────


def get_event(db: Session, event_id: str, viewer_id: Optional[str] = None) -> dict[str, Any]:
    store = EntityStore(db)
    if viewer_id:
        store.get_user(viewer_id)
    return event_view(store, store.get_event(event_id), viewer_id)


def list_events(
    db: Session,
    filter: Optional[EventFilter] = None,
    viewer_id: Optional[str] = None,
) -> list[dict[str, Any]]:
    store = EntityStore(db)
    if viewer_id:
        store.get_user(viewer_id)
    return _event_views(store, store.list_events(filter), viewer_id)


def upcoming_events(
    db: Session,
    limit: Optional[int] = None,
    viewer_id: Optional[str] = None,
) -> list[dict[str, Any]]:
    """Events dated now or later, soonest first."""
    filter = EventFilter(starts_after=utcnow(), limit=limit or settings.UPCOMING_EVENTS_LIMIT)
    return list_events(db, filter, viewer_id)


def get_user(db: Session, user_id: str) -> dict[str, Any]:
    store = EntityStore(db)
    return user_view(store, store.get_user(user_id))


def list_users(db: Session) -> list[dict[str, Any]]:
    store = EntityStore(db)
    users = store.list_users()
    user_ids = [u.user_id for u in users]
    return _user_views(
        store,
        users,
        store.organized_events_by_user(user_ids),
        store.attending_events_by_user(user_ids),
    )


def list_attendees(db: Session, event_id: str) -> list[dict[str, Any]]:
    store = EntityStore(db)
    return [_user_summary(u) for u in store.list_attendees(event_id)]


def is_user_attending(db: Session, event_id: str, user_id: str) -> bool:
    store = EntityStore(db)
    store.get_event(event_id)
    store.get_user(user_id)
    return store.is_attending(user_id, event_id)


def rsvp_event_view(db: Session, event: Event, viewer_id: str) -> dict[str, Any]:
    """Event shape returned alongside an RSVP mutation, seen by the acting user."""
    return event_view(EntityStore(db), event, viewer_id)


def rsvp_user_view(user: User) -> dict[str, Any]:
    return _user_summary(user)
