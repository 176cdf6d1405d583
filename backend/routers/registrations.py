from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from models import User
from providers import Providers, get_providers
from registration_service import (
    cancel_registration,
    get_registration_for_actor,
    list_event_registrations,
    list_user_registrations,
    mark_attendance,
    register_for_event,
    update_registration_status,
    verify_check_in_code,
)
from schemas import (
    BookingResponse,
    CancelResponse,
    PaymentOrderResponse,
    QrVerifyRequest,
    QrVerifyResponse,
    RegistrationCreate,
    RegistrationResponse,
    RegistrationStatusUpdate,
)
from security import require_admin, require_user

router = APIRouter()


@router.post("/registrations", response_model=BookingResponse, status_code=201)
def create_registration(
    payload: RegistrationCreate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
    providers: Providers = Depends(get_providers),
):
    registration, order = register_for_event(db, providers, user, payload.event_id, payload.ticket_count)
    return BookingResponse(
        registration=RegistrationResponse.model_validate(registration),
        payment=PaymentOrderResponse.model_validate(order) if order else None,
    )


@router.get("/registrations/my-registrations", response_model=List[RegistrationResponse])
def my_registrations(
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    return list_user_registrations(db, user)


@router.post("/registrations/verify-qr", response_model=QrVerifyResponse)
def verify_qr(
    payload: QrVerifyRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    providers: Providers = Depends(get_providers),
):
    data, registration = verify_check_in_code(db, providers, payload.qr_data)
    return QrVerifyResponse(
        valid=True,
        payload=data,
        registration=RegistrationResponse.model_validate(registration),
    )


@router.get("/registrations/event/{event_id}", response_model=List[RegistrationResponse])
def event_registrations(
    event_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return list_event_registrations(db, event_id)


@router.get("/registrations/{registration_id}", response_model=RegistrationResponse)
def get_registration(
    registration_id: int,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    return get_registration_for_actor(db, user, registration_id)


@router.delete("/registrations/{registration_id}", response_model=CancelResponse)
def delete_registration(
    registration_id: int,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    registration = cancel_registration(db, user, registration_id)
    return CancelResponse(registration=RegistrationResponse.model_validate(registration))


@router.patch("/registrations/{registration_id}/status", response_model=RegistrationResponse)
def set_registration_status(
    registration_id: int,
    payload: RegistrationStatusUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    providers: Providers = Depends(get_providers),
):
    return update_registration_status(db, providers, admin, registration_id, payload.status)


@router.patch("/registrations/{registration_id}/attendance", response_model=RegistrationResponse)
def set_attendance(
    registration_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return mark_attendance(db, admin, registration_id)
