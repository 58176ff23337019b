"""Event ORM model.

Capacity lives in ``max_attendees`` (NULL means unlimited). Attendee counts
and remaining spots are never stored; see ``services.query_service``.
"""
import uuid
from sqlalchemy import Column, String, Text, Integer, ForeignKey, CheckConstraint, Index
from sqlalchemy.sql import func
from event_scheduler.database import Base, UTCDateTime


class Event(Base):
    __tablename__ = "events"

    event_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    date = Column(UTCDateTime(), nullable=False)
    location = Column(String(255), nullable=False)
    max_attendees = Column(Integer, nullable=True)
    organizer_id = Column(String(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    created_at = Column(UTCDateTime(), server_default=func.now())
    updated_at = Column(UTCDateTime(), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(
            "max_attendees IS NULL OR max_attendees > 0",
            name="check_max_attendees_positive",
        ),
        Index("ix_events_date", "date"),
        Index("ix_events_organizer", "organizer_id"),
    )

    def __repr__(self) -> str:
        return f"<Event(event_id={self.event_id}, title={self.title}, max_attendees={self.max_attendees})>"
