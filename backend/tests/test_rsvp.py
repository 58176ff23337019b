"""RSVP mutation tests through the API.

Walks the capacity scenarios end to end and checks the structured
success / failure payloads and the derived fields after every step.
"""
import pytest

from event_scheduler.config import settings
from event_scheduler.models.attendance import Attendance
from tests.conftest import create_test_user, create_test_event, rsvp, cancel


def _event(client, event_id, viewer_id=None):
    params = {"viewer_id": viewer_id} if viewer_id else None
    resp = client.get(f"/api/events/{event_id}", params=params)
    assert resp.status_code == 200, resp.text
    return resp.json()


def _assert_spots_consistent(event):
    if event["max_attendees"] is not None:
        assert event["available_spots"] + event["attendee_count"] == event["max_attendees"]
    else:
        assert event["available_spots"] is None


class TestCapacityScenario:
    """Capacity-2 event: two joins fill it, a third is refused until someone cancels."""

    def test_full_scenario(self, client):
        u1 = create_test_user(client, name="U1")
        u2 = create_test_user(client, name="U2")
        u3 = create_test_user(client, name="U3")
        u4 = create_test_user(client, name="U4")
        event = create_test_event(client, u1["user_id"], max_attendees=2)
        eid = event["event_id"]

        resp = rsvp(client, eid, u2["user_id"])
        body = resp.json()
        assert resp.status_code == 200
        assert body["success"] is True
        assert body["outcome"] == "joined"
        assert body["errors"] == []
        assert body["event"]["attendee_count"] == 1
        assert body["event"]["available_spots"] == 1
        assert body["event"]["is_user_attending"] is True
        assert body["user"]["user_id"] == u2["user_id"]

        body = rsvp(client, eid, u3["user_id"]).json()
        assert body["success"] is True
        assert body["event"]["attendee_count"] == 2
        assert body["event"]["available_spots"] == 0

        resp = rsvp(client, eid, u4["user_id"])
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is False
        assert body["message"] == "Event is full"
        assert body["errors"] == ["Event is full"]
        assert body["event"] is None
        assert _event(client, eid)["attendee_count"] == 2

        body = cancel(client, eid, u2["user_id"]).json()
        assert body["success"] is True
        assert body["outcome"] == "cancelled"
        assert body["event"]["attendee_count"] == 1
        assert body["event"]["available_spots"] == 1

        body = rsvp(client, eid, u4["user_id"]).json()
        assert body["success"] is True
        assert body["event"]["attendee_count"] == 2
        _assert_spots_consistent(_event(client, eid))

    def test_already_attending_on_full_event_is_success(self, client):
        organizer = create_test_user(client)
        guest = create_test_user(client, name="Guest")
        event = create_test_event(client, organizer["user_id"], max_attendees=1)
        rsvp(client, event["event_id"], guest["user_id"])

        body = rsvp(client, event["event_id"], guest["user_id"]).json()
        assert body["success"] is True
        assert body["outcome"] == "already_attending"
        assert body["event"]["attendee_count"] == 1


class TestUnlimitedEvent:

    def test_never_full(self, client):
        organizer = create_test_user(client)
        event = create_test_event(client, organizer["user_id"])
        for i in range(12):
            guest = create_test_user(client, name=f"Guest {i}")
            body = rsvp(client, event["event_id"], guest["user_id"]).json()
            assert body["success"] is True
            assert body["event"]["available_spots"] is None

        data = _event(client, event["event_id"])
        assert data["attendee_count"] == 12
        assert data["available_spots"] is None


class TestIdempotency:

    def test_join_twice_counts_once(self, client):
        organizer = create_test_user(client)
        guest = create_test_user(client, name="Guest")
        event = create_test_event(client, organizer["user_id"], max_attendees=5)

        first = rsvp(client, event["event_id"], guest["user_id"]).json()
        second = rsvp(client, event["event_id"], guest["user_id"]).json()
        assert first["outcome"] == "joined"
        assert second["success"] is True
        assert second["outcome"] == "already_attending"
        assert second["message"] == "You are already registered for this event"
        assert _event(client, event["event_id"])["attendee_count"] == 1

    def test_cancel_twice_succeeds(self, client):
        organizer = create_test_user(client)
        guest = create_test_user(client, name="Guest")
        other = create_test_user(client, name="Other")
        event = create_test_event(client, organizer["user_id"], max_attendees=5)
        rsvp(client, event["event_id"], guest["user_id"])
        rsvp(client, event["event_id"], other["user_id"])

        first = cancel(client, event["event_id"], guest["user_id"]).json()
        second = cancel(client, event["event_id"], guest["user_id"]).json()
        assert first["outcome"] == "cancelled"
        assert second["success"] is True
        assert second["outcome"] == "not_attending"
        assert second["errors"] == []
        assert _event(client, event["event_id"])["attendee_count"] == 1

    def test_cancel_without_rsvp(self, client):
        organizer = create_test_user(client)
        guest = create_test_user(client, name="Guest")
        event = create_test_event(client, organizer["user_id"])
        body = cancel(client, event["event_id"], guest["user_id"]).json()
        assert body["success"] is True
        assert body["event"]["attendee_count"] == 0


class TestIsUserAttending:

    def test_flag_follows_join_and_cancel(self, client):
        organizer = create_test_user(client)
        u3 = create_test_user(client, name="U3")
        event = create_test_event(client, organizer["user_id"], max_attendees=2)
        eid = event["event_id"]

        assert _event(client, eid, u3["user_id"])["is_user_attending"] is False
        rsvp(client, eid, u3["user_id"])
        assert _event(client, eid, u3["user_id"])["is_user_attending"] is True
        cancel(client, eid, u3["user_id"])
        assert _event(client, eid, u3["user_id"])["is_user_attending"] is False

    def test_organizer_may_rsvp_to_own_event(self, client):
        organizer = create_test_user(client)
        event = create_test_event(client, organizer["user_id"], max_attendees=1)
        body = rsvp(client, event["event_id"], organizer["user_id"]).json()
        assert body["success"] is True
        assert body["event"]["attendee_count"] == 1


class TestUnknownIds:

    def test_rsvp_unknown_event(self, client, db):
        guest = create_test_user(client, name="Guest")
        resp = rsvp(client, "no-such-event", guest["user_id"])
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Event not found"
        assert db.query(Attendance).count() == 0

    def test_rsvp_unknown_user(self, client, db):
        organizer = create_test_user(client)
        event = create_test_event(client, organizer["user_id"])
        resp = rsvp(client, event["event_id"], "no-such-user")
        assert resp.status_code == 404
        assert db.query(Attendance).count() == 0

    def test_cancel_unknown_event(self, client):
        guest = create_test_user(client, name="Guest")
        assert cancel(client, "no-such-event", guest["user_id"]).status_code == 404

    def test_malformed_request(self, client):
        resp = client.post("/api/rsvp", json={"event_id": "abc"})
        assert resp.status_code == 422


class TestPastEventPolicy:

    def test_past_event_joinable_by_default(self, client):
        organizer = create_test_user(client)
        guest = create_test_user(client, name="Guest")
        event = create_test_event(client, organizer["user_id"], days_from_now=-1)
        assert rsvp(client, event["event_id"], guest["user_id"]).json()["success"] is True

    def test_past_event_closed_when_disabled(self, client, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(settings, "ALLOW_PAST_EVENT_RSVP", False)
        organizer = create_test_user(client)
        guest = create_test_user(client, name="Guest")
        past = create_test_event(client, organizer["user_id"], title="Past", days_from_now=-1)
        future = create_test_event(client, organizer["user_id"], title="Future", days_from_now=1)

        body = rsvp(client, past["event_id"], guest["user_id"]).json()
        assert body["success"] is False
        assert body["errors"] == ["Event has already taken place"]
        assert _event(client, past["event_id"])["attendee_count"] == 0

        assert rsvp(client, future["event_id"], guest["user_id"]).json()["success"] is True

    def test_cancel_allowed_on_past_event_when_disabled(self, client, monkeypatch: pytest.MonkeyPatch):
        organizer = create_test_user(client)
        guest = create_test_user(client, name="Guest")
        past = create_test_event(client, organizer["user_id"], days_from_now=-1)
        rsvp(client, past["event_id"], guest["user_id"])

        monkeypatch.setattr(settings, "ALLOW_PAST_EVENT_RSVP", False)
        body = cancel(client, past["event_id"], guest["user_id"]).json()
        assert body["success"] is True
        assert body["outcome"] == "cancelled"
