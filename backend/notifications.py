import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from email_templates import (
    build_feedback_thanks_email,
    build_payment_confirmed_email,
    build_registration_confirmed_email,
    build_reminder_email,
    build_status_update_email,
)

logger = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    REGISTRATION_CONFIRMED = "registration_confirmed"
    REMINDER = "reminder"
    PAYMENT_CONFIRMED = "payment_confirmed"
    FEEDBACK_THANKS = "feedback_thanks"
    STATUS_UPDATE = "status_update"


@dataclass
class NotificationResult:
    success: bool
    error: Optional[str] = None


def event_context(event) -> Dict[str, Any]:
    return {
        "title": event.title,
        "date": event.date,
        "time": event.time,
        "venue": event.venue,
        "location": event.location,
    }


def _render(kind: NotificationKind, context: Dict[str, Any]):
    user_name = context.get("user_name") or "there"
    if kind == NotificationKind.REGISTRATION_CONFIRMED:
        return build_registration_confirmed_email(user_name, context["event"])
    if kind == NotificationKind.REMINDER:
        return build_reminder_email(user_name, context["event"])
    if kind == NotificationKind.PAYMENT_CONFIRMED:
        return build_payment_confirmed_email(user_name, context["event"], context["payment"])
    if kind == NotificationKind.FEEDBACK_THANKS:
        return build_feedback_thanks_email(user_name, context["event_title"])
    if kind == NotificationKind.STATUS_UPDATE:
        return build_status_update_email(user_name, context["event_title"], context["status"])
    raise ValueError(f"Unknown notification kind: {kind}")


class NotificationDispatcher:
    """Renders transactional emails and sends them through a mailer.

    `send` never raises: delivery problems come back as a failed
    NotificationResult so callers can log them and carry on.
    """

    def __init__(self, mailer):
        self.mailer = mailer

    def send(self, kind: NotificationKind, recipient: Optional[str], context: Dict[str, Any]) -> NotificationResult:
        if not recipient:
            return NotificationResult(success=False, error="missing_recipient")
        try:
            subject, html, text = _render(NotificationKind(kind), context)
            self.mailer.send(recipient, subject, html, text)
        except Exception as exc:
            logger.warning("Failed to send %s email to %s: %s", getattr(kind, "value", kind), recipient, exc)
            return NotificationResult(success=False, error=str(exc))
        return NotificationResult(success=True)
