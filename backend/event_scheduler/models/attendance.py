"""Attendance ORM model — the User<->Event RSVP relation.

The composite primary key is what makes a (user, event) pair appear at most once.
"""
from sqlalchemy import Column, String, ForeignKey, Index
from event_scheduler.database import Base, UTCDateTime, utcnow


class Attendance(Base):
    __tablename__ = "attendances"

    user_id = Column(String(36), ForeignKey("users.user_id", ondelete="CASCADE"), primary_key=True)
    event_id = Column(String(36), ForeignKey("events.event_id", ondelete="CASCADE"), primary_key=True)
    joined_at = Column(UTCDateTime(), nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_attendances_event", "event_id"),
    )
