import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import stripe

from errors import GatewayError, GatewayUnconfigured

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "inr"


def to_minor_units(amount: float) -> int:
    return int(round(float(amount) * 100))


def from_minor_units(amount: Optional[int]) -> float:
    return (amount or 0) / 100


@dataclass
class IntentResult:
    client_secret: str
    payment_intent_id: str


@dataclass
class VerifyResult:
    success: bool
    status: str
    amount: float


@dataclass
class FetchResult:
    success: bool
    payment: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RefundResult:
    refund_id: str
    status: Optional[str]


class PaymentGateway:
    """Stripe payment intents and refunds.

    Amounts are major currency units on every public method; conversion to
    minor units happens only here. Whether the gateway is usable is decided
    once, when it is constructed.
    """

    def __init__(self, secret_key: Optional[str], currency: str = DEFAULT_CURRENCY, publishable_key: Optional[str] = None):
        self._secret_key = secret_key or None
        self.currency = (currency or DEFAULT_CURRENCY).lower()
        self.publishable_key = publishable_key
        if not self._secret_key:
            logger.warning("STRIPE_SECRET_KEY not found. Payment features are disabled until the key is provided.")

    @classmethod
    def from_env(cls) -> "PaymentGateway":
        return cls(
            secret_key=os.environ.get("STRIPE_SECRET_KEY"),
            currency=os.environ.get("STRIPE_CURRENCY", DEFAULT_CURRENCY),
            publishable_key=os.environ.get("STRIPE_PUBLISHABLE_KEY"),
        )

    @property
    def configured(self) -> bool:
        return self._secret_key is not None

    def _require_configured(self) -> None:
        if not self.configured:
            raise GatewayUnconfigured("Payments are not configured")

    def create_intent(self, amount: float, event_id: int, user_id: int, email: Optional[str]) -> IntentResult:
        self._require_configured()
        try:
            intent = stripe.PaymentIntent.create(
                api_key=self._secret_key,
                amount=to_minor_units(amount),
                currency=self.currency,
                metadata={"eventId": str(event_id), "userId": str(user_id)},
                receipt_email=email or None,
            )
        except stripe.StripeError as exc:
            logger.warning("Stripe payment intent creation failed for event %s: %s", event_id, exc)
            raise GatewayError("Failed to create payment intent") from exc
        return IntentResult(client_secret=intent.client_secret, payment_intent_id=intent.id)

    def _retrieve(self, intent_id: str):
        return stripe.PaymentIntent.retrieve(intent_id, api_key=self._secret_key)

    def verify(self, intent_id: str) -> VerifyResult:
        self._require_configured()
        try:
            intent = self._retrieve(intent_id)
        except stripe.StripeError as exc:
            logger.warning("Stripe payment verification failed for %s: %s", intent_id, exc)
            raise GatewayError("Failed to verify payment") from exc
        return VerifyResult(
            success=intent.status == "succeeded",
            status=intent.status,
            amount=from_minor_units(intent.amount),
        )

    def fetch(self, intent_id: str) -> FetchResult:
        self._require_configured()
        try:
            intent = self._retrieve(intent_id)
        except stripe.StripeError as exc:
            logger.warning("Stripe payment fetch failed for %s: %s", intent_id, exc)
            raise GatewayError("Failed to fetch payment details") from exc
        return FetchResult(
            success=True,
            payment={
                "id": intent.id,
                "status": intent.status,
                "amount": from_minor_units(intent.amount),
                "currency": intent.currency,
            },
        )

    def refund(self, intent_id: str, amount: Optional[float] = None) -> RefundResult:
        """Refund a payment intent; no amount means a full refund.

        The gateway rejects partial amounts above what was captured.
        """
        self._require_configured()
        params = {"payment_intent": intent_id}
        if amount is not None:
            params["amount"] = to_minor_units(amount)
        try:
            refund = stripe.Refund.create(api_key=self._secret_key, **params)
        except stripe.StripeError as exc:
            logger.warning("Stripe refund failed for %s: %s", intent_id, exc)
            raise GatewayError("Failed to initiate refund") from exc
        return RefundResult(refund_id=refund.id, status=refund.status)
