"""Implementaciones in-memory para testing y modo demo."""

from tour_booking.infrastructure.in_memory.abandoned_cart_repo import InMemoryAbandonedCartRepo
from tour_booking.infrastructure.in_memory.agency_repo import InMemoryAgencyRepo
from tour_booking.infrastructure.in_memory.notifier import InMemoryNotifier
from tour_booking.infrastructure.in_memory.payment_provider import FakePaymentProvider
from tour_booking.infrastructure.in_memory.payment_repo import InMemoryPaymentRepo
from tour_booking.infrastructure.in_memory.refund_repo import InMemoryRefundRepo
from tour_booking.infrastructure.in_memory.reservation_repo import InMemoryReservationRepo
from tour_booking.infrastructure.in_memory.store import InMemoryStore
from tour_booking.infrastructure.in_memory.transaction_manager import InMemoryTransactionManager
from tour_booking.infrastructure.in_memory.turno_repo import InMemoryTurnoRepo
from tour_booking.infrastructure.in_memory.webhook_event_repo import InMemoryWebhookEventRepo

__all__ = [
    "InMemoryStore",
    # Repositories
    "InMemoryReservationRepo",
    "InMemoryTurnoRepo",
    "InMemoryPaymentRepo",
    "InMemoryRefundRepo",
    "InMemoryAbandonedCartRepo",
    "InMemoryWebhookEventRepo",
    "InMemoryAgencyRepo",
    # Gateways
    "FakePaymentProvider",
    "InMemoryNotifier",
    # Infrastructure
    "InMemoryTransactionManager",
]
