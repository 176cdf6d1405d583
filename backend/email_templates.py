import html as html_lib
from datetime import date, datetime
from typing import Any, Dict, Tuple

FOOTER_TEXT = "This is an automated email from StageDeck Event Management System.\n"
FOOTER_HTML = (
    '<p style="color: #6b7280; font-size: 12px; margin-top: 30px;">'
    "This is an automated email from StageDeck Event Management System.</p>"
)

STATUS_MESSAGES = {
    "confirmed": {
        "subject": "Registration Approved",
        "color": "#10b981",
        "message": "Your registration has been approved! We look forward to seeing you at the event.",
    },
    "rejected": {
        "subject": "Registration Update",
        "color": "#ef4444",
        "message": "Unfortunately, your registration could not be approved at this time. Please contact us for more information.",
    },
    "cancelled": {
        "subject": "Registration Cancelled",
        "color": "#6b7280",
        "message": "Your registration has been cancelled. If this was a mistake, you can register again while seats are available.",
    },
}


def _e(value: Any) -> str:
    return html_lib.escape(_format(value))


def _format(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (datetime, date)):
        return value.strftime("%d %b %Y")
    return str(value)


def _wrap(heading: str, color: str, body: str) -> str:
    return f"""
    <html>
      <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #1b1f24;">
        <div style="max-width: 600px; margin: 0 auto;">
          <h2 style="color: {color};">{heading}</h2>
          {body}
          {FOOTER_HTML}
        </div>
      </body>
    </html>
    """


def _event_block_html(event: Dict[str, Any], *, with_location: bool = True) -> str:
    location = f"<p><strong>Location:</strong> {_e(event.get('location'))}</p>" if with_location else ""
    return (
        '<div style="background: #f3f4f6; padding: 20px; border-radius: 8px; margin: 20px 0;">'
        '<h3 style="margin-top: 0;">Event Details:</h3>'
        f"<p><strong>Date:</strong> {_e(event.get('date'))}</p>"
        f"<p><strong>Time:</strong> {_e(event.get('time'))}</p>"
        f"<p><strong>Venue:</strong> {_e(event.get('venue'))}</p>"
        f"{location}"
        "</div>"
    )


def _event_block_text(event: Dict[str, Any], *, with_location: bool = True) -> str:
    lines = [
        "Event Details:",
        f"Date: {_format(event.get('date'))}",
        f"Time: {_format(event.get('time'))}",
        f"Venue: {_format(event.get('venue'))}",
    ]
    if with_location:
        lines.append(f"Location: {_format(event.get('location'))}")
    return "\n".join(lines) + "\n"


def build_registration_confirmed_email(user_name: str, event: Dict[str, Any]) -> Tuple[str, str, str]:
    subject = f"Registration Confirmed: {event.get('title')}"
    text = (
        f"Hi {user_name},\n\n"
        f"Your registration for {event.get('title')} has been confirmed!\n\n"
        f"{_event_block_text(event)}\n"
        "Please keep this email for your records. You'll need to show your QR code at the event entrance.\n\n"
        "Looking forward to seeing you there!\n\n"
        f"{FOOTER_TEXT}"
    )
    body = (
        f"<p>Hi {_e(user_name)},</p>"
        f"<p>Your registration for <strong>{_e(event.get('title'))}</strong> has been confirmed!</p>"
        f"{_event_block_html(event)}"
        "<p>Please keep this email for your records. You'll need to show your QR code at the event entrance.</p>"
        "<p>Looking forward to seeing you there!</p>"
    )
    return subject, _wrap("Registration Confirmed!", "#6366f1", body), text


def build_reminder_email(user_name: str, event: Dict[str, Any]) -> Tuple[str, str, str]:
    subject = f"Reminder: {event.get('title')} is Tomorrow!"
    text = (
        f"Hi {user_name},\n\n"
        f"This is a friendly reminder that {event.get('title')} is happening tomorrow!\n\n"
        f"{_event_block_text(event)}\n"
        "Don't forget to bring your QR code for check-in!\n\n"
        "See you soon!\n\n"
        f"{FOOTER_TEXT}"
    )
    body = (
        f"<p>Hi {_e(user_name)},</p>"
        f"<p>This is a friendly reminder that <strong>{_e(event.get('title'))}</strong> is happening tomorrow!</p>"
        f"{_event_block_html(event)}"
        "<p>Don't forget to bring your QR code for check-in!</p>"
        "<p>See you soon!</p>"
    )
    return subject, _wrap("Event Reminder", "#6366f1", body), text


def build_payment_confirmed_email(user_name: str, event: Dict[str, Any], payment: Dict[str, Any]) -> Tuple[str, str, str]:
    subject = f"Payment Confirmed: {event.get('title')}"
    paid_on = _format(payment.get("paid_at") or datetime.now())
    text = (
        f"Hi {user_name},\n\n"
        f"Your payment for {event.get('title')} has been confirmed.\n\n"
        "Payment Details:\n"
        f"Amount: {payment.get('amount')} {str(payment.get('currency') or '').upper()}\n"
        f"Transaction ID: {payment.get('transaction_id')}\n"
        f"Date: {paid_on}\n\n"
        f"{_event_block_text(event, with_location=False)}\n"
        "Your registration is now complete. See you at the event!\n\n"
        f"{FOOTER_TEXT}"
    )
    body = (
        f"<p>Hi {_e(user_name)},</p>"
        f"<p>Your payment for <strong>{_e(event.get('title'))}</strong> has been confirmed.</p>"
        '<div style="background: #f3f4f6; padding: 20px; border-radius: 8px; margin: 20px 0;">'
        '<h3 style="margin-top: 0;">Payment Details:</h3>'
        f"<p><strong>Amount:</strong> {_e(payment.get('amount'))} {_e(str(payment.get('currency') or '').upper())}</p>"
        f"<p><strong>Transaction ID:</strong> {_e(payment.get('transaction_id'))}</p>"
        f"<p><strong>Date:</strong> {_e(paid_on)}</p>"
        "</div>"
        f"{_event_block_html(event, with_location=False)}"
        "<p>Your registration is now complete. See you at the event!</p>"
    )
    return subject, _wrap("Payment Successful!", "#10b981", body), text


def build_feedback_thanks_email(user_name: str, event_title: str) -> Tuple[str, str, str]:
    subject = "Thank You for Your Feedback!"
    text = (
        f"Hi {user_name},\n\n"
        f"Thank you for taking the time to share your feedback about {event_title}.\n\n"
        "Your input helps us improve and create better events for our community.\n\n"
        "We hope to see you at our future events!\n\n"
        f"{FOOTER_TEXT}"
    )
    body = (
        f"<p>Hi {_e(user_name)},</p>"
        f"<p>Thank you for taking the time to share your feedback about <strong>{_e(event_title)}</strong>.</p>"
        "<p>Your input helps us improve and create better events for our community.</p>"
        "<p>We hope to see you at our future events!</p>"
    )
    return subject, _wrap("Thank You!", "#6366f1", body), text


def build_status_update_email(user_name: str, event_title: str, status: str) -> Tuple[str, str, str]:
    info = STATUS_MESSAGES.get(status, STATUS_MESSAGES["confirmed"])
    subject = f"{info['subject']}: {event_title}"
    text = (
        f"Hi {user_name},\n\n"
        f"{info['message']}\n\n"
        f"Event: {event_title}\n\n"
        f"{FOOTER_TEXT}"
    )
    body = (
        f"<p>Hi {_e(user_name)},</p>"
        f"<p>{info['message']}</p>"
        f"<p><strong>Event:</strong> {_e(event_title)}</p>"
    )
    return subject, _wrap(f"Registration {status.capitalize()}", info["color"], body), text
