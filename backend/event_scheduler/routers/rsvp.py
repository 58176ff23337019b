"""RSVP mutation routes.

Capacity and past-event refusals come back as ``success: false`` payloads;
unknown ids are request errors (404) raised by the service layer.
"""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from event_scheduler.database import get_db
from event_scheduler.errors import EventClosedError, EventFullError
from event_scheduler.schemas.rsvp import RsvpPayload, RsvpRequest
from event_scheduler.services import event_service, query_service
from event_scheduler.services.event_service import RsvpResult

logger = logging.getLogger(__name__)
router = APIRouter()


def _success(db: Session, result: RsvpResult) -> dict:
    return {
        "success": True,
        "message": result.message,
        "errors": [],
        "outcome": result.outcome.value,
        "event": query_service.rsvp_event_view(db, result.event, result.user.user_id),
        "user": query_service.rsvp_user_view(result.user),
    }


@router.post("", response_model=RsvpPayload)
def rsvp_to_event(payload: RsvpRequest, db: Session = Depends(get_db)):
    """RSVP a user to an event. Repeating an RSVP is a successful no-op."""
    try:
        result = event_service.join_event(db, payload.user_id, payload.event_id)
    except (EventFullError, EventClosedError) as exc:
        logger.info("RSVP refused for user %s on event %s: %s", payload.user_id, payload.event_id, exc.message)
        return {"success": False, "message": exc.message, "errors": [exc.message]}
    return _success(db, result)


@router.post("/cancel", response_model=RsvpPayload)
def cancel_rsvp(payload: RsvpRequest, db: Session = Depends(get_db)):
    """Withdraw an RSVP. Cancelling twice is a successful no-op."""
    result = event_service.cancel_rsvp(db, payload.user_id, payload.event_id)
    return _success(db, result)
