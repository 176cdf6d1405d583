from types import SimpleNamespace

import pytest
import stripe

from errors import GatewayError, GatewayUnconfigured
from payments import PaymentGateway, from_minor_units, to_minor_units


def test_minor_unit_conversion_rounds():
    assert to_minor_units(499.99) == 49999
    assert to_minor_units(0.1 + 0.2) == 30
    assert from_minor_units(49999) == 499.99
    assert from_minor_units(None) == 0


def test_unconfigured_gateway_never_calls_stripe(monkeypatch):
    def _explode(*args, **kwargs):
        raise AssertionError("network call attempted")

    monkeypatch.setattr(stripe.PaymentIntent, "create", _explode)
    monkeypatch.setattr(stripe.PaymentIntent, "retrieve", _explode)
    monkeypatch.setattr(stripe.Refund, "create", _explode)
    gateway = PaymentGateway(secret_key=None)

    assert gateway.configured is False
    with pytest.raises(GatewayUnconfigured):
        gateway.create_intent(100, 1, 1, "a@example.com")
    with pytest.raises(GatewayUnconfigured):
        gateway.verify("pi_1")
    with pytest.raises(GatewayUnconfigured):
        gateway.fetch("pi_1")
    with pytest.raises(GatewayUnconfigured):
        gateway.refund("pi_1")


def test_create_intent_sends_minor_units_and_metadata(monkeypatch):
    calls = []

    def _create(**kwargs):
        calls.append(kwargs)
        return SimpleNamespace(id="pi_123", client_secret="pi_123_secret")

    monkeypatch.setattr(stripe.PaymentIntent, "create", _create)
    gateway = PaymentGateway(secret_key="sk_test_x", currency="INR")

    result = gateway.create_intent(250.5, 4, 9, "asha@example.com")

    assert result.payment_intent_id == "pi_123"
    assert result.client_secret == "pi_123_secret"
    assert calls[0]["amount"] == 25050
    assert calls[0]["currency"] == "inr"
    assert calls[0]["metadata"] == {"eventId": "4", "userId": "9"}
    assert calls[0]["api_key"] == "sk_test_x"


def test_verify_converts_amount_back(monkeypatch):
    monkeypatch.setattr(
        stripe.PaymentIntent,
        "retrieve",
        lambda intent_id, api_key=None: SimpleNamespace(id=intent_id, status="succeeded", amount=25050, currency="inr"),
    )
    gateway = PaymentGateway(secret_key="sk_test_x")

    result = gateway.verify("pi_123")
    assert result.success is True
    assert result.amount == 250.5

    fetched = gateway.fetch("pi_123")
    assert fetched.payment["status"] == "succeeded"


def test_stripe_errors_become_gateway_errors(monkeypatch):
    def _fail(*args, **kwargs):
        raise stripe.StripeError("card_declined: secret detail")

    monkeypatch.setattr(stripe.Refund, "create", _fail)
    gateway = PaymentGateway(secret_key="sk_test_x")

    with pytest.raises(GatewayError) as excinfo:
        gateway.refund("pi_123", amount=10)
    assert "secret detail" not in excinfo.value.message


def test_refund_passes_partial_amount(monkeypatch):
    calls = []

    def _create(**kwargs):
        calls.append(kwargs)
        return SimpleNamespace(id="re_1", status="pending")

    monkeypatch.setattr(stripe.Refund, "create", _create)
    gateway = PaymentGateway(secret_key="sk_test_x")

    result = gateway.refund("pi_123", amount=12.5)
    assert result.refund_id == "re_1"
    assert calls[0]["amount"] == 1250
    assert calls[0]["payment_intent"] == "pi_123"

    gateway.refund("pi_123")
    assert "amount" not in calls[1]
