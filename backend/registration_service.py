"""Registration and booking workflow.

Seats are reserved on the event when a registration is created (pending or
confirmed) and released when it is cancelled or rejected. Reservation is a
single conditional UPDATE, so two requests racing for the last seat cannot
both succeed.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import case, or_, update
from sqlalchemy.orm import Session

from errors import (
    CapacityExceeded,
    Closed,
    Conflict,
    Forbidden,
    GatewayError,
    MalformedPayload,
    NotFound,
    PaymentUnavailable,
    ValidationError,
)
from models import (
    Event,
    EventStatus,
    Payment,
    PaymentStatus,
    Refund,
    Registration,
    RegistrationStatus,
    SEAT_HOLDING_STATUSES,
    User,
)
from notifications import NotificationKind, event_context
from payments import VerifyResult

logger = logging.getLogger(__name__)

ATTENDANCE_POINTS = 10
AMOUNT_TOLERANCE = 0.005


@dataclass
class PaymentOrder:
    client_secret: str
    payment_intent_id: str
    amount: float
    currency: str
    publishable_key: Optional[str] = None


def _now() -> datetime:
    return datetime.now(timezone.utc)


def get_event_or_404(db: Session, event_id: int) -> Event:
    event = db.query(Event).filter(Event.id == event_id).first()
    if not event:
        raise NotFound("Event not found")
    return event


def get_registration_or_404(db: Session, registration_id: int) -> Registration:
    registration = db.query(Registration).filter(Registration.id == registration_id).first()
    if not registration:
        raise NotFound("Registration not found")
    return registration


def _ensure_owner_or_admin(registration_user_id: int, actor: User) -> None:
    if registration_user_id != actor.id and not actor.is_admin:
        raise Forbidden("Not authorized to access this registration")


def _active_registration(db: Session, event_id: int, user_id: int) -> Optional[Registration]:
    return db.query(Registration).filter(
        Registration.event_id == event_id,
        Registration.user_id == user_id,
        Registration.status.in_(SEAT_HOLDING_STATUSES),
    ).first()


def reserve_seats(db: Session, event_id: int, seats: int) -> None:
    result = db.execute(
        update(Event)
        .where(
            Event.id == event_id,
            Event.status == EventStatus.SCHEDULED,
            or_(Event.capacity == 0, Event.seats_taken + seats <= Event.capacity),
        )
        .values(seats_taken=Event.seats_taken + seats)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise CapacityExceeded()


def release_seats(db: Session, event_id: int, seats: int) -> None:
    db.execute(
        update(Event)
        .where(Event.id == event_id)
        .values(seats_taken=case((Event.seats_taken > seats, Event.seats_taken - seats), else_=0))
        .execution_options(synchronize_session=False)
    )


def _issue_qr(providers, registration: Registration) -> None:
    registration.qr_code = providers.qr.issue(registration).data_url


def _notify_registration_confirmed(providers, registration: Registration, event: Event) -> None:
    providers.notifier.send(
        NotificationKind.REGISTRATION_CONFIRMED,
        registration.user_email,
        {"user_name": registration.user_name, "event": event_context(event)},
    )


def _start_payment(db: Session, providers, registration: Registration, event: Event, user: User) -> PaymentOrder:
    amount = round(float(event.price) * registration.ticket_count, 2)
    try:
        intent = providers.payments.create_intent(amount, event.id, user.id, user.email)
    except GatewayError as exc:
        logger.warning("Payment intent unavailable for registration %s: %s", registration.id, exc)
        raise PaymentUnavailable() from exc

    db.add(Payment(
        event_id=event.id,
        user_id=user.id,
        registration_id=registration.id,
        amount=amount,
        currency=providers.payments.currency,
        transaction_id=intent.payment_intent_id,
        status=PaymentStatus.CREATED,
    ))
    db.commit()
    return PaymentOrder(
        client_secret=intent.client_secret,
        payment_intent_id=intent.payment_intent_id,
        amount=amount,
        currency=providers.payments.currency,
        publishable_key=providers.payments.publishable_key,
    )


def register_for_event(db: Session, providers, user: User, event_id: int, ticket_count: int = 1) -> Tuple[Registration, Optional[PaymentOrder]]:
    """Book seats for a user.

    Free events are confirmed on the spot. Priced events stay pending until the
    payment is verified; if the payment intent cannot be created the pending
    registration is kept so the user can retry through create_payment_order.
    """
    if ticket_count < 1:
        raise ValidationError("ticketCount must be at least 1")

    event = get_event_or_404(db, event_id)
    if event.status != EventStatus.SCHEDULED:
        raise Closed()
    if _active_registration(db, event.id, user.id):
        raise Conflict("Already registered for this event")

    reserve_seats(db, event.id, ticket_count)
    registration = Registration(
        event_id=event.id,
        user_id=user.id,
        user_name=user.name,
        user_email=user.email,
        ticket_count=ticket_count,
        status=RegistrationStatus.CONFIRMED if event.is_free else RegistrationStatus.PENDING,
    )
    db.add(registration)
    db.flush()
    if event.is_free:
        _issue_qr(providers, registration)
    db.commit()
    db.refresh(registration)
    logger.info("User %s registered for event %s (%s)", user.id, event.id, registration.status.value)

    if event.is_free:
        _notify_registration_confirmed(providers, registration, event)
        return registration, None

    order = _start_payment(db, providers, registration, event, user)
    db.refresh(registration)
    return registration, order


def create_payment_order(db: Session, providers, user: User, event_id: int, amount: Optional[float] = None) -> PaymentOrder:
    event = get_event_or_404(db, event_id)
    if event.is_free:
        raise ValidationError("This is a free event")
    if event.status != EventStatus.SCHEDULED:
        raise Closed()
    registration = db.query(Registration).filter(
        Registration.event_id == event.id,
        Registration.user_id == user.id,
        Registration.status == RegistrationStatus.PENDING,
    ).first()
    if not registration:
        raise NotFound("No pending registration for this event")
    expected = round(float(event.price) * registration.ticket_count, 2)
    if amount is not None and abs(float(amount) - expected) > AMOUNT_TOLERANCE:
        raise ValidationError("Amount does not match the event price")
    return _start_payment(db, providers, registration, event, user)


def verify_payment(db: Session, providers, actor: User, payment_intent_id: str) -> VerifyResult:
    payment = db.query(Payment).filter(Payment.transaction_id == payment_intent_id).first()
    if not payment:
        raise NotFound("Payment not found")
    _ensure_owner_or_admin(payment.user_id, actor)

    if payment.status == PaymentStatus.SUCCEEDED:
        return VerifyResult(success=True, status="succeeded", amount=payment.amount)

    result = providers.payments.verify(payment_intent_id)
    if not result.success:
        if result.status == "canceled":
            payment.status = PaymentStatus.FAILED
            db.commit()
        return result

    registration = payment.registration
    event = payment.event
    payment.status = PaymentStatus.SUCCEEDED
    payment.paid_at = _now()
    confirmed = False
    if registration.status == RegistrationStatus.PENDING:
        registration.status = RegistrationStatus.CONFIRMED
        _issue_qr(providers, registration)
        confirmed = True
    else:
        logger.warning(
            "Payment %s succeeded for registration %s in state %s; refund may be needed",
            payment.id, registration.id, registration.status.value,
        )
    db.commit()

    providers.notifier.send(
        NotificationKind.PAYMENT_CONFIRMED,
        registration.user_email,
        {
            "user_name": registration.user_name,
            "event": event_context(event),
            "payment": {
                "amount": payment.amount,
                "currency": payment.currency,
                "transaction_id": payment.transaction_id,
                "paid_at": payment.paid_at,
            },
        },
    )
    if confirmed:
        _notify_registration_confirmed(providers, registration, event)
    return result


def cancel_registration(db: Session, actor: User, registration_id: int) -> Registration:
    registration = get_registration_or_404(db, registration_id)
    _ensure_owner_or_admin(registration.user_id, actor)
    if registration.status == RegistrationStatus.CANCELLED:
        return registration
    if registration.status == RegistrationStatus.REJECTED:
        raise Conflict("Rejected registrations cannot be cancelled")
    if registration.attended:
        raise Conflict("Attended registrations cannot be cancelled")

    registration.status = RegistrationStatus.CANCELLED
    release_seats(db, registration.event_id, registration.ticket_count)
    db.commit()
    db.refresh(registration)
    logger.info("Registration %s cancelled by user %s", registration.id, actor.id)
    return registration


def update_registration_status(db: Session, providers, admin: User, registration_id: int, status: RegistrationStatus) -> Registration:
    registration = get_registration_or_404(db, registration_id)
    previous = registration.status
    if previous == status:
        return registration
    if previous == RegistrationStatus.CANCELLED:
        raise Conflict("Cancelled registrations cannot be updated")
    if registration.attended:
        raise Conflict("Attended registrations cannot be updated")

    if status == RegistrationStatus.CONFIRMED:
        if previous not in SEAT_HOLDING_STATUSES:
            if registration.event.status != EventStatus.SCHEDULED:
                raise Closed()
            reserve_seats(db, registration.event_id, registration.ticket_count)
        registration.status = RegistrationStatus.CONFIRMED
        if not registration.qr_code:
            _issue_qr(providers, registration)
    elif status == RegistrationStatus.REJECTED:
        if previous in SEAT_HOLDING_STATUSES:
            release_seats(db, registration.event_id, registration.ticket_count)
        registration.status = RegistrationStatus.REJECTED
    else:
        raise ValidationError("Status must be confirmed or rejected")
    db.commit()
    db.refresh(registration)
    logger.info("Registration %s moved from %s to %s by admin %s", registration.id, previous.value, status.value, admin.id)

    providers.notifier.send(
        NotificationKind.STATUS_UPDATE,
        registration.user_email,
        {"user_name": registration.user_name, "event_title": registration.event.title, "status": status.value},
    )
    return registration


def mark_attendance(db: Session, admin: User, registration_id: int) -> Registration:
    registration = get_registration_or_404(db, registration_id)
    if registration.attended:
        return registration
    registration.attended = True
    registration.check_in_time = _now()
    user = db.query(User).filter(User.id == registration.user_id).first()
    if user:
        user.points = int(user.points or 0) + ATTENDANCE_POINTS
    db.commit()
    db.refresh(registration)
    logger.info("Attendance marked for registration %s by admin %s", registration.id, admin.id)
    return registration


def initiate_refund(db: Session, providers, admin: User, payment_id: int, amount: Optional[float] = None) -> Refund:
    payment = db.query(Payment).filter(Payment.id == payment_id).first()
    if not payment:
        raise NotFound("Payment not found")
    if payment.status != PaymentStatus.SUCCEEDED:
        raise Conflict("Only succeeded payments can be refunded")

    result = providers.payments.refund(payment.transaction_id, amount)
    refund = Refund(
        payment_id=payment.id,
        refund_id=result.refund_id,
        amount=amount,
        status=result.status,
        requested_by_user_id=admin.id,
    )
    db.add(refund)
    db.commit()
    db.refresh(refund)
    logger.info("Refund %s issued for payment %s by admin %s", refund.refund_id, payment.id, admin.id)
    return refund


def verify_check_in_code(db: Session, providers, raw_payload: str) -> Tuple[Dict[str, Any], Registration]:
    """Validate a scanned QR payload against the stored registration."""
    data = providers.qr.validate(raw_payload)
    try:
        registration_id = int(data["registrationId"])
        event_id = int(data["eventId"])
        user_id = int(data["userId"])
    except (TypeError, ValueError) as exc:
        raise MalformedPayload() from exc

    registration = get_registration_or_404(db, registration_id)
    if registration.event_id != event_id or registration.user_id != user_id:
        raise MalformedPayload("QR code does not match the registration")
    if registration.status != RegistrationStatus.CONFIRMED:
        raise Conflict("Registration is not confirmed")
    return data, registration


def send_event_reminders(db: Session, providers, event_id: int) -> Tuple[int, int]:
    event = get_event_or_404(db, event_id)
    registrations = db.query(Registration).filter(
        Registration.event_id == event.id,
        Registration.status == RegistrationStatus.CONFIRMED,
    ).all()
    sent = 0
    failed = 0
    context = event_context(event)
    for registration in registrations:
        result = providers.notifier.send(
            NotificationKind.REMINDER,
            registration.user_email,
            {"user_name": registration.user_name, "event": context},
        )
        if result.success:
            sent += 1
        else:
            failed += 1
    logger.info("Reminders for event %s: %s sent, %s failed", event.id, sent, failed)
    return sent, failed


def list_user_registrations(db: Session, user: User) -> List[Registration]:
    return (
        db.query(Registration)
        .filter(Registration.user_id == user.id)
        .order_by(Registration.created_at.desc(), Registration.id.desc())
        .all()
    )


def list_event_registrations(db: Session, event_id: int) -> List[Registration]:
    event = get_event_or_404(db, event_id)
    return (
        db.query(Registration)
        .filter(Registration.event_id == event.id)
        .order_by(Registration.created_at.desc(), Registration.id.desc())
        .all()
    )


def get_registration_for_actor(db: Session, actor: User, registration_id: int) -> Registration:
    registration = get_registration_or_404(db, registration_id)
    _ensure_owner_or_admin(registration.user_id, actor)
    return registration
