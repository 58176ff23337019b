"""Pydantic schemas for Users."""
from __future__ import annotations
from datetime import datetime
from pydantic import BaseModel


class UserCreate(BaseModel):
    name: str
    email: str


class UserSummary(BaseModel):
    user_id: str
    name: str
    email: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserOut(UserSummary):
    organized_events: list[EventSummary] = []
    attending_events: list[EventSummary] = []


from event_scheduler.schemas.event import EventSummary  # noqa: E402

UserOut.model_rebuild()
