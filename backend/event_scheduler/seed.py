"""Sample users, events and RSVPs for local development.

Run from the backend directory with ``python -m event_scheduler.seed`` (or the
``event-scheduler-seed`` script). Re-running is safe: users are matched by
email, events by organizer and title, and RSVPs go through the normal join
path, so nothing is duplicated and capacity still applies.
"""
import logging
from datetime import timedelta

from sqlalchemy.orm import Session

from event_scheduler.config import settings
from event_scheduler.database import Base, SessionLocal, engine, utcnow
from event_scheduler.services import event_service
from event_scheduler.services.entity_store import EntityStore
from event_scheduler.services.event_service import RsvpOutcome

logger = logging.getLogger(__name__)

SEED_USERS = [
    ("John Doe", "john.doe@example.com"),
    ("Jane Smith", "jane.smith@example.com"),
    ("Mike Johnson", "mike.johnson@example.com"),
    ("Sarah Williams", "sarah.williams@example.com"),
    ("David Brown", "david.brown@example.com"),
    ("Lisa Davis", "lisa.davis@example.com"),
    ("Chris Wilson", "chris.wilson@example.com"),
    ("Emma Taylor", "emma.taylor@example.com"),
]

# (title, description, days from today, hour, location, max_attendees, organizer index)
SEED_EVENTS = [
    (
        "Tech Meetup: React and GraphQL",
        "An evening on React and GraphQL: best practices, new features and real-world applications.",
        14, 18, "Tech Hub Downtown, 123 Main Street", 50, 0,
    ),
    (
        "Community Garden Workshop",
        "Sustainable gardening practices and seed planting for the upcoming season. All skill levels welcome!",
        19, 10, "Central Park Community Center", 25, 1,
    ),
    (
        "Startup Pitch Night",
        "Local entrepreneurs present their ideas to investors and the community.",
        24, 19, "Innovation Center, 456 Business Ave", 100, 2,
    ),
    (
        "Photography Walk",
        "Explore the city through your lens with fellow photography enthusiasts.",
        28, 14, "City Art District", 20, 3,
    ),
    (
        "Cooking Class: Italian Cuisine",
        "Learn to make pasta, sauces and traditional desserts with Chef Maria.",
        32, 17, "Culinary Institute Kitchen", 15, 4,
    ),
    (
        "Book Club: Sci-Fi Classics",
        "Monthly discussion of classic science fiction. This month: Asimov's Foundation series.",
        37, 15, "Downtown Library Meeting Room", 30, 5,
    ),
    (
        "Yoga in the Park",
        "A relaxing outdoor yoga session. Bring your own mat.",
        39, 8, "Riverside Park Pavilion", 40, 6,
    ),
    (
        "Career Development Workshop",
        "Resume writing, interview skills and networking strategies.",
        45, 18, "Business Development Center", 60, 7,
    ),
]

# event index -> attending user indexes
SEED_RSVPS = {
    0: [1, 2, 3, 4, 5],
    1: [0, 2, 6, 7],
    2: [0, 1, 3, 4, 5, 6, 7],
    3: [0, 1, 2],
    4: [0, 1, 2, 3, 5, 6],
    5: [0, 2, 4, 7],
    6: [1, 3, 5, 7],
    7: [0, 2, 4, 6],
}


def seed_database(db: Session) -> dict[str, int]:
    """Create the sample data; returns how many users, events and new RSVPs."""
    store = EntityStore(db)

    users = []
    for name, email in SEED_USERS:
        user = store.get_user_by_email(email)
        if user is None:
            user = event_service.create_user(db, {"name": name, "email": email})
        users.append(user)

    today = utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
    events = []
    for title, description, days, hour, location, capacity, organizer in SEED_EVENTS:
        organizer_id = users[organizer].user_id
        existing = {e.title: e for e in store.list_organized_events(organizer_id)}
        event = existing.get(title)
        if event is None:
            event = event_service.create_event(db, organizer_id, {
                "title": title,
                "description": description,
                "date": today + timedelta(days=days, hours=hour),
                "location": location,
                "max_attendees": capacity,
            })
        events.append(event)

    joined = 0
    for event_index, attendees in SEED_RSVPS.items():
        for user_index in attendees:
            result = event_service.join_event(db, users[user_index].user_id, events[event_index].event_id)
            if result.outcome is RsvpOutcome.joined:
                joined += 1

    logger.info("Seeded %d users, %d events, %d new RSVPs", len(users), len(events), joined)
    return {"users": len(users), "events": len(events), "rsvps": joined}


def main() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_database(db)
    finally:
        db.close()


if __name__ == "__main__":
    main()
