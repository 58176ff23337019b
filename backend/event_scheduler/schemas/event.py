"""Pydantic schemas for Events."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class EventCreate(BaseModel):
    organizer_id: str
    title: str
    description: str
    date: datetime
    location: str
    max_attendees: Optional[int] = None


class EventUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    date: Optional[datetime] = None
    location: Optional[str] = None
    max_attendees: Optional[int] = None


class EventSummary(BaseModel):
    event_id: str
    title: str
    description: str
    date: datetime
    location: str
    max_attendees: Optional[int] = None
    organizer_id: str
    created_at: datetime
    updated_at: datetime
    attendee_count: int
    available_spots: Optional[int] = None
    is_user_attending: Optional[bool] = None

    model_config = {"from_attributes": True}


class EventOut(EventSummary):
    organizer: UserSummary
    attendees: list[UserSummary] = []


class AttendanceCheckOut(BaseModel):
    event_id: str
    user_id: str
    is_attending: bool


from event_scheduler.schemas.user import UserSummary  # noqa: E402

EventOut.model_rebuild()
