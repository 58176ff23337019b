"""Event API routes. Reads go through query_service, writes through event_service."""
from typing import Optional
from datetime import datetime
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from event_scheduler.database import get_db
from event_scheduler.schemas.event import AttendanceCheckOut, EventCreate, EventOut, EventUpdate
from event_scheduler.schemas.user import UserSummary
from event_scheduler.services import event_service, query_service
from event_scheduler.services.entity_store import EntityStore, EventFilter

router = APIRouter()


@router.post("/", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(payload: EventCreate, db: Session = Depends(get_db)):
    """Create a new event organized by ``organizer_id``."""
    fields = payload.model_dump(exclude={"organizer_id"})
    event = event_service.create_event(db, payload.organizer_id, fields)
    return query_service.event_view(EntityStore(db), event)


@router.get("/", response_model=list[EventOut])
def list_events(
    organizer_id: Optional[str] = Query(None),
    starts_after: Optional[datetime] = Query(None),
    starts_before: Optional[datetime] = Query(None),
    viewer_id: Optional[str] = Query(None, description="User to compute is_user_attending for"),
    db: Session = Depends(get_db),
):
    """List events ordered by date, with optional filters."""
    filter = EventFilter(
        organizer_id=organizer_id,
        starts_after=starts_after,
        starts_before=starts_before,
    )
    return query_service.list_events(db, filter, viewer_id)


@router.get("/upcoming", response_model=list[EventOut])
def upcoming_events(
    limit: Optional[int] = Query(None, ge=1),
    viewer_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """Events dated now or later, soonest first."""
    return query_service.upcoming_events(db, limit, viewer_id)


@router.get("/{event_id}", response_model=EventOut)
def get_event(event_id: str, viewer_id: Optional[str] = Query(None), db: Session = Depends(get_db)):
    """Fetch a single event with organizer, attendees and live counts."""
    return query_service.get_event(db, event_id, viewer_id)


@router.get("/{event_id}/attendees", response_model=list[UserSummary])
def list_attendees(event_id: str, db: Session = Depends(get_db)):
    return query_service.list_attendees(db, event_id)


@router.get("/{event_id}/attendees/{user_id}", response_model=AttendanceCheckOut)
def is_user_attending(event_id: str, user_id: str, db: Session = Depends(get_db)):
    attending = query_service.is_user_attending(db, event_id, user_id)
    return {"event_id": event_id, "user_id": user_id, "is_attending": attending}


@router.patch("/{event_id}", response_model=EventOut)
def update_event(
    event_id: str,
    payload: EventUpdate,
    actor_user_id: str = Query(..., description="ID of the user performing the update"),
    db: Session = Depends(get_db),
):
    """Update an event (organizer only)."""
    updates = payload.model_dump(exclude_unset=True)
    event = event_service.update_event(db, event_id, actor_user_id, updates)
    return query_service.event_view(EntityStore(db), event)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(
    event_id: str,
    actor_user_id: str = Query(..., description="ID of the user performing the delete"),
    db: Session = Depends(get_db),
):
    """Delete an event and all RSVPs to it (organizer only)."""
    event_service.delete_event(db, event_id, actor_user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
