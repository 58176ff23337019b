"""User API routes."""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from event_scheduler.database import get_db
from event_scheduler.schemas.user import UserCreate, UserOut
from event_scheduler.services import event_service, query_service
from event_scheduler.services.entity_store import EntityStore

router = APIRouter()


@router.post("/", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    """Create a new user. Emails are unique (case-insensitive)."""
    user = event_service.create_user(db, payload.model_dump())
    return query_service.user_view(EntityStore(db), user)


@router.get("/", response_model=list[UserOut])
def list_users(db: Session = Depends(get_db)):
    """List all users with their organized and attending events."""
    return query_service.list_users(db)


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: str, db: Session = Depends(get_db)):
    """Fetch a single user by ID."""
    return query_service.get_user(db, user_id)
