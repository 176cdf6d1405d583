from models import UserRole
from routers.feedback import feedback_stats


def _attend(client, event, user, admin, auth_headers):
    registration = client.post("/api/registrations", json={"eventId": event.id}, headers=auth_headers(user)).json()["registration"]
    client.patch(f"/api/registrations/{registration['id']}/attendance", headers=auth_headers(admin))
    return registration


def test_feedback_requires_attendance(client, make_event, user, admin, auth_headers):
    event = make_event()
    body = {"eventId": event.id, "rating": 5, "comment": "Brilliant!"}

    assert client.post("/api/feedback", json=body, headers=auth_headers(user)).status_code == 403

    client.post("/api/registrations", json={"eventId": event.id}, headers=auth_headers(user))
    assert client.post("/api/feedback", json=body, headers=auth_headers(user)).status_code == 403


def test_feedback_submission_awards_points_and_thanks(client, db, ai_client, mailer, make_event, user, admin, auth_headers):
    event = make_event()
    _attend(client, event, user, admin, auth_headers)
    ai_client.replies = ['{"sentiment": "positive", "score": 0.8, "summary": "Very happy attendee"}']
    mailer.sent.clear()

    response = client.post(
        "/api/feedback",
        json={"eventId": event.id, "rating": 5, "comment": "  Loved the hands-on labs  "},
        headers=auth_headers(user),
    )

    assert response.status_code == 201
    data = response.json()
    assert data["comment"] == "Loved the hands-on labs"
    assert data["sentiment"] == "positive"
    assert data["sentimentScore"] == 0.8
    assert data["aiAnalysis"] == "Very happy attendee"
    assert mailer.sent[0]["subject"] == "Thank You for Your Feedback!"
    db.refresh(user)
    assert user.points == 15

    duplicate = client.post("/api/feedback", json={"eventId": event.id, "rating": 1, "comment": "again"}, headers=auth_headers(user))
    assert duplicate.status_code == 409


def test_feedback_validation(client, make_event, user, auth_headers):
    event = make_event()
    assert client.post("/api/feedback", json={"eventId": event.id, "rating": 6, "comment": "x"}, headers=auth_headers(user)).status_code == 422
    assert client.post("/api/feedback", json={"eventId": event.id, "rating": 4, "comment": "   "}, headers=auth_headers(user)).status_code == 422
    assert client.post("/api/feedback", json={"eventId": 999, "rating": 4, "comment": "ok"}, headers=auth_headers(user)).status_code == 404


def test_event_feedback_stats_summary_and_delete(client, ai_client, make_event, make_user, user, admin, auth_headers):
    event = make_event()
    other = make_user(name="Ravi Kumar")
    for member, rating in ((user, 5), (other, 2)):
        _attend(client, event, member, admin, auth_headers)
        client.post("/api/feedback", json={"eventId": event.id, "rating": rating, "comment": "noted"}, headers=auth_headers(member))

    listing = client.get(f"/api/feedback/event/{event.id}", headers=auth_headers(admin)).json()
    assert listing["count"] == 2
    assert listing["stats"]["averageRating"] == 3.5
    assert listing["stats"]["sentimentBreakdown"] == {"positive": 1, "neutral": 0, "negative": 1}
    assert listing["stats"]["ratingBreakdown"]["5"] == 1

    ai_client.replies = ["Attendees were split on the pacing."]
    summary = client.get(f"/api/feedback/event/{event.id}/summary", headers=auth_headers(admin)).json()
    assert summary == {"summary": "Attendees were split on the pacing.", "totalFeedbacks": 2}

    mine = client.get("/api/feedback/my-feedbacks", headers=auth_headers(user)).json()
    assert len(mine) == 1
    assert client.get("/api/feedback", params={"sentiment": "negative"}, headers=auth_headers(admin)).json()[0]["rating"] == 2

    deleted = client.delete(f"/api/feedback/{mine[0]['id']}", headers=auth_headers(admin))
    assert deleted.status_code == 200
    assert client.delete(f"/api/feedback/{mine[0]['id']}", headers=auth_headers(admin)).status_code == 404


def test_summary_without_feedback(client, make_event, admin, auth_headers):
    event = make_event()
    summary = client.get(f"/api/feedback/event/{event.id}/summary", headers=auth_headers(admin)).json()
    assert summary["totalFeedbacks"] == 0


def test_feedback_stats_of_nothing():
    stats = feedback_stats([])
    assert stats.total == 0
    assert stats.average_rating == 0.0


def test_chat_message_uses_caller_context(client, ai_client, user, auth_headers):
    ai_client.replies = ["Head to the Events page and press Book."]

    response = client.post(
        "/api/chat/message",
        json={"message": "How do I book?", "conversationHistory": [{"sender": "user", "text": "hi"}]},
        headers=auth_headers(user),
    )

    assert response.status_code == 200
    assert response.json()["reply"] == "Head to the Events page and press Book."
    assert "timestamp" in response.json()
    assert "User: Asha Rao" in ai_client.prompts[-1]


def test_chat_is_public_and_rejects_blank_messages(client, ai_client):
    ai_client.replies = ["Hello!"]
    assert client.post("/api/chat/message", json={"message": "hi"}).status_code == 200
    assert client.post("/api/chat/message", json={"message": "   "}).status_code == 422

    ai_client.error = RuntimeError("down")
    failed = client.post("/api/chat/message", json={"message": "hi"})
    assert failed.status_code == 502


def test_chat_suggestions_depend_on_role(client, make_user, auth_headers):
    guest = client.get("/api/chat/suggestions").json()["suggestions"]
    admin = make_user(name="Chat Admin", role=UserRole.ADMIN)
    for_admin = client.get("/api/chat/suggestions", headers=auth_headers(admin)).json()["suggestions"]

    assert "How do I book an event?" in guest
    assert "How do I create a new event?" in for_admin
