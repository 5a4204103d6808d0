"""Interfaces (Puertos) de la capa de aplicación."""

from tour_booking.application.interfaces.abandoned_cart_repo import AbandonedCartRepo
from tour_booking.application.interfaces.agency_repo import AgencyRepo
from tour_booking.application.interfaces.clock import Clock, FakeClock, SystemClock
from tour_booking.application.interfaces.notifier import NotificationMessage, Notifier
from tour_booking.application.interfaces.payment_provider import (
    AccountInfo,
    BalanceEntry,
    BalanceInfo,
    BankAccountInfo,
    CheckoutSessionInfo,
    PaymentIntentInfo,
    PaymentProvider,
    PayoutInfo,
    PayoutSchedule,
    RefundInfo,
)
from tour_booking.application.interfaces.payment_repo import PaymentRepo
from tour_booking.application.interfaces.refund_repo import RefundRepo
from tour_booking.application.interfaces.reservation_repo import ReservationRepo
from tour_booking.application.interfaces.transaction_manager import TransactionManager
from tour_booking.application.interfaces.turno_repo import TurnoRepo
from tour_booking.application.interfaces.webhook_event_repo import WebhookEventRepo

__all__ = [
    # Repositories
    "ReservationRepo",
    "TurnoRepo",
    "PaymentRepo",
    "RefundRepo",
    "AbandonedCartRepo",
    "WebhookEventRepo",
    "AgencyRepo",
    # Gateways
    "PaymentProvider",
    "PaymentIntentInfo",
    "CheckoutSessionInfo",
    "RefundInfo",
    "BalanceEntry",
    "BalanceInfo",
    "AccountInfo",
    "BankAccountInfo",
    "PayoutInfo",
    "PayoutSchedule",
    "Notifier",
    "NotificationMessage",
    # Infrastructure
    "TransactionManager",
    # Utilities
    "Clock",
    "SystemClock",
    "FakeClock",
]
