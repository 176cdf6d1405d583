from dataclasses import dataclass

from fastapi import Request

from ai_content import AiContentService
from emailer import Mailer
from notifications import NotificationDispatcher
from payments import PaymentGateway
from qr_codes import QrIssuer


@dataclass
class Providers:
    """External collaborators, built once at startup and shared by all requests."""

    payments: PaymentGateway
    ai: AiContentService
    notifier: NotificationDispatcher
    qr: QrIssuer


def build_providers() -> Providers:
    return Providers(
        payments=PaymentGateway.from_env(),
        ai=AiContentService.from_env(),
        notifier=NotificationDispatcher(Mailer.from_env()),
        qr=QrIssuer(),
    )


def get_providers(request: Request) -> Providers:
    return request.app.state.providers
