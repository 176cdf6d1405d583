from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session, selectinload

from database import get_db
from models import Payment, PaymentStatus, User
from providers import Providers, get_providers
from registration_service import create_payment_order, initiate_refund, verify_payment
from schemas import (
    PaymentOrderRequest,
    PaymentOrderResponse,
    PaymentResponse,
    PaymentVerifyRequest,
    PaymentVerifyResponse,
    RefundRequest,
    RefundResponse,
)
from security import require_admin, require_user

router = APIRouter()


@router.post("/payments/create-order", response_model=PaymentOrderResponse)
def create_order(
    payload: PaymentOrderRequest,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
    providers: Providers = Depends(get_providers),
):
    order = create_payment_order(db, providers, user, payload.event_id, payload.amount)
    return PaymentOrderResponse.model_validate(order)


@router.post("/payments/verify", response_model=PaymentVerifyResponse)
def verify(
    payload: PaymentVerifyRequest,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
    providers: Providers = Depends(get_providers),
):
    result = verify_payment(db, providers, user, payload.payment_intent_id)
    return PaymentVerifyResponse.model_validate(result)


@router.get("/payments/my-payments", response_model=List[PaymentResponse])
def my_payments(
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    return (
        db.query(Payment)
        .options(selectinload(Payment.refunds))
        .filter(Payment.user_id == user.id)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .all()
    )


@router.get("/payments/transactions", response_model=List[PaymentResponse])
def list_transactions(
    status: Optional[PaymentStatus] = None,
    limit: int = Query(50, ge=1, le=500),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    query = db.query(Payment).options(selectinload(Payment.refunds))
    if status:
        query = query.filter(Payment.status == status)
    return query.order_by(Payment.created_at.desc(), Payment.id.desc()).limit(limit).all()


@router.post("/payments/{payment_id}/refund", response_model=RefundResponse)
def refund(
    payment_id: int,
    payload: Optional[RefundRequest] = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    providers: Providers = Depends(get_providers),
):
    return initiate_refund(db, providers, admin, payment_id, payload.amount if payload else None)
