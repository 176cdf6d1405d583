from datetime import date, timedelta

from models import EventCategory, EventStatus


def _event_body(**overrides):
    body = {
        "title": "Rust for Beginners",
        "description": "A gentle introduction to ownership and borrowing.",
        "category": "Technology",
        "date": (date.today() + timedelta(days=10)).isoformat(),
        "time": "2:00 PM",
        "venue": "Lab 2",
        "location": "Main Campus",
        "tags": ["rust", " rust ", "systems", ""],
        "price": 0,
        "capacity": 30,
    }
    body.update(overrides)
    return body


def test_health(client):
    assert client.get("/api/health").json() == {"status": "healthy"}


def test_admin_creates_event_with_camel_case_fields(client, admin, auth_headers):
    response = client.post("/api/events", json=_event_body(isFeatured=True), headers=auth_headers(admin))

    assert response.status_code == 201
    data = response.json()
    assert data["creatorId"] == admin.id
    assert data["seatsTaken"] == 0
    assert data["isFeatured"] is True
    assert data["tags"] == ["rust", "systems"]
    assert data["status"] == "Scheduled"


def test_only_admins_create_events(client, user, auth_headers):
    response = client.post("/api/events", json=_event_body(), headers=auth_headers(user))
    assert response.status_code == 403
    assert client.post("/api/events", json=_event_body()).status_code in (401, 403)


def test_list_events_filters(client, make_event):
    make_event(title="Jazz Night", category=EventCategory.MUSIC, is_featured=True)
    make_event(title="Pitch Deck Clinic", category=EventCategory.BUSINESS, location="Innovation Hub")
    make_event(title="Old Meetup", status=EventStatus.COMPLETED)

    def titles(params):
        return sorted(e["title"] for e in client.get("/api/events", params=params).json())

    assert titles({"category": "Music"}) == ["Jazz Night"]
    assert titles({"featured": "true"}) == ["Jazz Night"]
    assert titles({"search": "innovation"}) == ["Pitch Deck Clinic"]
    assert titles({"status": "Completed"}) == ["Old Meetup"]
    assert len(titles({})) == 3


def test_get_missing_event_returns_404(client):
    response = client.get("/api/events/404")
    assert response.status_code == 404
    assert response.json() == {"detail": "Event not found"}


def test_only_owning_admin_updates_event(client, make_user, make_event, admin, auth_headers):
    event = make_event()
    other_admin = make_user(name="Other Admin", role=admin.role)

    denied = client.put(f"/api/events/{event.id}", json={"title": "Hijacked"}, headers=auth_headers(other_admin))
    assert denied.status_code == 403

    updated = client.put(f"/api/events/{event.id}", json={"title": "Renamed", "capacity": 5}, headers=auth_headers(admin))
    assert updated.status_code == 200
    assert updated.json()["title"] == "Renamed"
    assert updated.json()["capacity"] == 5

    status = client.patch(f"/api/events/{event.id}/status", json={"status": "Cancelled"}, headers=auth_headers(admin))
    assert status.json()["status"] == "Cancelled"


def test_capacity_cannot_drop_below_seats_taken(client, make_event, admin, auth_headers):
    event = make_event(capacity=10, seats_taken=4)
    response = client.put(f"/api/events/{event.id}", json={"capacity": 3}, headers=auth_headers(admin))
    assert response.status_code == 422


def test_clone_creates_draft_copy(client, make_event, admin, auth_headers):
    event = make_event(capacity=10, seats_taken=6, is_featured=True)

    response = client.post(f"/api/events/{event.id}/clone", headers=auth_headers(admin))

    assert response.status_code == 201
    data = response.json()
    assert data["id"] != event.id
    assert data["title"] == "Cloud Native Workshop (Copy)"
    assert data["status"] == "Draft"
    assert data["seatsTaken"] == 0
    assert data["isFeatured"] is False


def test_toggle_featured(client, make_event, admin, auth_headers):
    event = make_event()
    first = client.patch(f"/api/events/{event.id}/featured", headers=auth_headers(admin))
    second = client.patch(f"/api/events/{event.id}/featured", headers=auth_headers(admin))
    assert first.json()["isFeatured"] is True
    assert second.json()["isFeatured"] is False


def test_generate_description(client, ai_client, user, auth_headers):
    ai_client.replies = ["Join us for a hands-on robotics workshop."]
    ok = client.post("/api/events/generate-description", json={"keywords": "robotics"}, headers=auth_headers(user))
    assert ok.json() == {"description": "Join us for a hands-on robotics workshop."}

    ai_client.error = RuntimeError("model overloaded")
    failed = client.post("/api/events/generate-description", json={"keywords": "robotics"}, headers=auth_headers(user))
    assert failed.status_code == 502
    assert failed.json() == {"detail": "Failed to generate event description"}


def test_recommendations_use_model_ranking_with_fallback(client, ai_client, make_event, make_user, auth_headers):
    make_event(title="First", date=date.today() + timedelta(days=1))
    make_event(title="Second", date=date.today() + timedelta(days=2))
    make_event(title="Past", date=date.today() - timedelta(days=2))
    make_event(title="Hidden Draft", status=EventStatus.DRAFT)
    member = make_user(name="Meera Iyer", interests=["Technology"])

    ai_client.replies = ["2"]
    ranked = client.get("/api/events/recommendations", headers=auth_headers(member)).json()
    assert [e["title"] for e in ranked] == ["Second"]

    ai_client.error = RuntimeError("offline")
    fallback = client.get("/api/events/recommendations", headers=auth_headers(member)).json()
    assert [e["title"] for e in fallback] == ["First", "Second"]


def test_send_reminders(client, mailer, make_event, user, admin, auth_headers):
    event = make_event()
    client.post("/api/registrations", json={"eventId": event.id}, headers=auth_headers(user))
    mailer.sent.clear()

    response = client.post(f"/api/events/{event.id}/reminders", headers=auth_headers(admin))

    assert response.json() == {"sent": 1, "failed": 0}
    assert mailer.sent[0]["subject"].startswith("Reminder:")


def test_my_events_lists_only_own_events(client, make_user, make_event, admin, auth_headers):
    other_admin = make_user(name="Other Admin", role=admin.role)
    mine = make_event(title="Mine")
    make_event(title="Theirs", creator_id=other_admin.id)

    response = client.get("/api/events/my-events", headers=auth_headers(admin))

    assert response.status_code == 200
    assert [e["id"] for e in response.json()] == [mine.id]


def test_my_events_is_admin_only(client, user, auth_headers):
    assert client.get("/api/events/my-events", headers=auth_headers(user)).status_code == 403


def test_owning_admin_deletes_event_without_registrations(client, make_user, make_event, admin, auth_headers):
    event = make_event()
    other_admin = make_user(name="Other Admin", role=admin.role)

    denied = client.delete(f"/api/events/{event.id}", headers=auth_headers(other_admin))
    assert denied.status_code == 403

    deleted = client.delete(f"/api/events/{event.id}", headers=auth_headers(admin))
    assert deleted.status_code == 200
    assert client.get(f"/api/events/{event.id}").status_code == 404


def test_event_with_registrations_cannot_be_deleted(client, make_event, user, admin, auth_headers):
    event = make_event()
    client.post("/api/registrations", json={"eventId": event.id}, headers=auth_headers(user))

    response = client.delete(f"/api/events/{event.id}", headers=auth_headers(admin))

    assert response.status_code == 409
    assert client.get(f"/api/events/{event.id}").status_code == 200
