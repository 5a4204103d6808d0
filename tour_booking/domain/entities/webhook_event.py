"""Eventos de webhook de Stripe soportados y su registro de procesamiento."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class WebhookEventType(str, Enum):
    """Tipos de evento que el despachador sabe manejar."""

    CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
    PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"
    ACCOUNT_UPDATED = "account.updated"
    ACCOUNT_APPLICATION_AUTHORIZED = "account.application.authorized"
    ACCOUNT_APPLICATION_DEAUTHORIZED = "account.application.deauthorized"

    @classmethod
    def parse(cls, raw: str | None) -> "WebhookEventType | None":
        try:
            return cls(raw)
        except ValueError:
            return None


@dataclass
class ProcessedWebhookEvent:
    event_id: str
    event_type: str
    processed_at: datetime
    success: bool = True
    outcome: str | None = None
