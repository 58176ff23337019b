"""Pydantic schemas for the RSVP mutations."""
from typing import Optional
from pydantic import BaseModel

from event_scheduler.schemas.event import EventOut
from event_scheduler.schemas.user import UserSummary


class RsvpRequest(BaseModel):
    event_id: str
    user_id: str


class RsvpPayload(BaseModel):
    success: bool
    message: str
    errors: list[str] = []
    outcome: Optional[str] = None
    event: Optional[EventOut] = None
    user: Optional[UserSummary] = None
