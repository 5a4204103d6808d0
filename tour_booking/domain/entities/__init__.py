"""Entidades del dominio."""

from tour_booking.domain.entities.abandoned_cart import AbandonedCart
from tour_booking.domain.entities.agency import Agency
from tour_booking.domain.entities.payment import (
    PAID_EXTERNAL_STATUSES,
    Payment,
    PaymentStatus,
    Refund,
    RefundStatus,
)
from tour_booking.domain.entities.reservation import (
    ItemType,
    Reservation,
    ReservationItem,
    ReservationStatus,
)
from tour_booking.domain.entities.turno import Turno
from tour_booking.domain.entities.webhook_event import ProcessedWebhookEvent, WebhookEventType

__all__ = [
    # Reservation
    "Reservation",
    "ReservationItem",
    "ReservationStatus",
    "ItemType",
    "AbandonedCart",
    "Turno",
    # Payment
    "Payment",
    "PaymentStatus",
    "PAID_EXTERNAL_STATUSES",
    "Refund",
    "RefundStatus",
    # Agency
    "Agency",
    # Webhooks
    "WebhookEventType",
    "ProcessedWebhookEvent",
]
