"""Repositorios SQL."""

from tour_booking.infrastructure.db.repositories.abandoned_cart_repo_sql import AbandonedCartRepoSQL
from tour_booking.infrastructure.db.repositories.agency_repo_sql import AgencyRepoSQL
from tour_booking.infrastructure.db.repositories.payment_repo_sql import PaymentRepoSQL
from tour_booking.infrastructure.db.repositories.refund_repo_sql import RefundRepoSQL
from tour_booking.infrastructure.db.repositories.reservation_repo_sql import ReservationRepoSQL
from tour_booking.infrastructure.db.repositories.turno_repo_sql import TurnoRepoSQL
from tour_booking.infrastructure.db.repositories.webhook_event_repo_sql import WebhookEventRepoSQL

__all__ = [
    "AbandonedCartRepoSQL",
    "AgencyRepoSQL",
    "PaymentRepoSQL",
    "RefundRepoSQL",
    "ReservationRepoSQL",
    "TurnoRepoSQL",
    "WebhookEventRepoSQL",
]
