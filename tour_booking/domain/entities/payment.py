"""Entidades Payment y Refund."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


# Estados externos de Stripe que acreditan un pago completado
PAID_EXTERNAL_STATUSES = frozenset({"paid", "succeeded", "complete"})


class PaymentStatus(str, Enum):
    """Estados internos de un pago."""

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class RefundStatus(str, Enum):
    COMPLETED = "completed"
    PENDING = "pending"
    FAILED = "failed"


@dataclass
class Payment:
    """
    Pago registrado contra una reservación.

    Nunca se elimina; la fila más reciente con estado externo pagado es la
    que autoriza reembolsos.
    """

    # Identificadores
    id: int | None = None
    reservation_id: int = 0
    agency_id: int | None = None

    # Stripe específico
    stripe_session_id: str | None = None
    stripe_payment_intent_id: str | None = None
    receipt_url: str | None = None

    # Monto
    amount: int = 0
    currency: str = "USD"
    platform_fee: int | None = None

    # Estado
    status: PaymentStatus = PaymentStatus.PENDING
    external_status: str | None = None

    # Cliente
    customer_email: str | None = None
    customer_name: str | None = None

    # Timestamps
    created_at: datetime | None = None
    updated_at: datetime | None = None

    # === Propiedades ===

    @property
    def is_paid(self) -> bool:
        """Verifica si el estado externo acredita el cobro."""
        return (self.external_status or "").lower() in PAID_EXTERNAL_STATUSES

    # === Métodos de negocio ===

    def mark_succeeded(self, external_status: str, now: datetime) -> None:
        self.status = PaymentStatus.SUCCEEDED
        self.external_status = external_status
        self.updated_at = now


@dataclass
class Refund:
    """Reembolso ejecutado en Stripe y registrado localmente."""

    id: int | None = None
    reservation_id: int = 0
    payment_id: int | None = None
    stripe_refund_id: str = ""
    amount: int = 0
    currency: str = "USD"
    status: RefundStatus = RefundStatus.COMPLETED
    authorized_by: str = ""
    reason: str | None = None
    used_fallback: bool = False
    fallback_reason: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
