from datetime import date, timedelta
from pathlib import Path
from types import SimpleNamespace
import os
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
BACKEND_DIR = ROOT / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-signing-key-0123456789-abcdefghijklmnop"
for _key in ("STRIPE_SECRET_KEY", "GEMINI_API_KEY", "SMTP_PRIMARY_HOST", "SMTP_SECONDARY_HOST"):
    os.environ.pop(_key, None)

from ai_content import AiContentService
from auth import create_user_token
from database import Base, SessionLocal, engine
from errors import GatewayError
from models import Event, EventCategory, EventStatus, User, UserRole
from notifications import NotificationDispatcher
from payments import IntentResult, RefundResult, VerifyResult
from providers import Providers
from qr_codes import QrIssuer


class FakeMailer:
    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, to_email, subject, html, text):
        if self.fail:
            raise RuntimeError("SMTP unavailable")
        self.sent.append({"to": to_email, "subject": subject, "html": html, "text": text})


class FakeGateway:
    currency = "inr"
    publishable_key = "pk_test_stagedeck"
    configured = True

    def __init__(self):
        self.intents = {}
        self.statuses = {}
        self.refunds = []
        self.fail_create = False

    def create_intent(self, amount, event_id, user_id, email):
        if self.fail_create:
            raise GatewayError("Failed to create payment intent")
        intent_id = f"pi_test_{len(self.intents) + 1}"
        self.intents[intent_id] = amount
        self.statuses[intent_id] = "requires_payment_method"
        return IntentResult(client_secret=f"{intent_id}_secret", payment_intent_id=intent_id)

    def verify(self, intent_id):
        status = self.statuses[intent_id]
        return VerifyResult(success=status == "succeeded", status=status, amount=self.intents[intent_id])

    def refund(self, intent_id, amount=None):
        self.refunds.append((intent_id, amount))
        return RefundResult(refund_id=f"re_test_{len(self.refunds)}", status="succeeded")


class FakeAiClient:
    """Stands in for genai.Client: replies are consumed in order."""

    def __init__(self):
        self.replies = []
        self.error = None
        self.prompts = []
        self.models = self

    def generate_content(self, model, contents):
        self.prompts.append(contents)
        if self.error:
            raise self.error
        return SimpleNamespace(text=self.replies.pop(0) if self.replies else "")


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def ai_client():
    return FakeAiClient()


@pytest.fixture
def providers(gateway, ai_client, mailer):
    return Providers(
        payments=gateway,
        ai=AiContentService(api_key=None, client=ai_client),
        notifier=NotificationDispatcher(mailer),
        qr=QrIssuer(),
    )


@pytest.fixture
def client(db, providers):
    from fastapi.testclient import TestClient
    from providers import get_providers
    from server import app

    app.dependency_overrides[get_providers] = lambda: providers
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make(name="Asha Rao", email=None, role=UserRole.USER, interests=None):
        user = User(
            name=name,
            email=email or f"{name.lower().replace(' ', '.')}@example.com",
            role=role,
            interests=interests or [],
            points=0,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def admin(make_user):
    return make_user(name="Event Admin", email="admin@example.com", role=UserRole.ADMIN)


@pytest.fixture
def user(make_user):
    return make_user(name="Asha Rao", email="asha@example.com")


@pytest.fixture
def make_event(db, admin):
    def _make(**overrides):
        values = {
            "title": "Cloud Native Workshop",
            "description": "Build and deploy a containerised service.",
            "category": EventCategory.TECHNOLOGY,
            "date": date.today() + timedelta(days=3),
            "time": "10:00 AM",
            "venue": "Hall A",
            "location": "Main Campus",
            "tags": ["cloud"],
            "price": 0,
            "capacity": 0,
            "status": EventStatus.SCHEDULED,
            "creator_id": admin.id,
        }
        values.update(overrides)
        event = Event(**values)
        db.add(event)
        db.commit()
        db.refresh(event)
        return event
    return _make


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_user_token(user)}"}
    return _headers
