"""Entidad Reservation - Agregado raíz del dominio."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from tour_booking.domain.errors import InvalidReservationStatusError, ValidationError


class ReservationStatus(str, Enum):
    """Estados posibles de una reservación."""

    HOLD = "hold"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    ABANDONED = "abandoned"


class ItemType(str, Enum):
    """Tipos de línea de una reservación."""

    RATE = "rate"  # ocupa cupo en el turno
    ADDON = "addon"
    TRANSPORT = "transport"


@dataclass
class ReservationItem:
    """Línea de una reservación (tarifa, adicional o transporte)."""

    item_type: ItemType
    quantity: int
    unit_price: int
    catalog_ref_id: int | None = None
    position: int = 0

    @property
    def total(self) -> int:
        return self.quantity * self.unit_price

    @property
    def occupies_seats(self) -> bool:
        return self.item_type == ItemType.RATE

    def validate(self) -> None:
        if self.quantity <= 0:
            raise ValidationError("quantity", "debe ser mayor a cero")
        if self.unit_price < 0:
            raise ValidationError("unit_price", "no puede ser negativo")


@dataclass
class Reservation:
    """
    Entidad principal del dominio - Agregado Raíz.

    Representa la reservación de un cliente sobre un turno de actividad.
    Los montos se manejan en unidades menores (centavos).
    """

    # Identificadores
    id: int | None = None
    booking_code: str = ""

    # Referencias externas (FKs)
    turno_id: int = 0
    agency_id: int = 0
    customer_id: int | None = None

    # Cliente
    customer_email: str | None = None
    customer_name: str | None = None
    language: str = "es"

    # Estado
    state: ReservationStatus = ReservationStatus.HOLD

    # Financieros
    total_amount: int = 0
    currency: str = "USD"
    payment_intent_id: str | None = None

    # Timestamps
    created_at: datetime | None = None
    updated_at: datetime | None = None
    expires_at: datetime | None = None
    cancelled_at: datetime | None = None

    items: list[ReservationItem] = field(default_factory=list)

    # === Propiedades calculadas ===

    @property
    def occupant_count(self) -> int:
        """Suma de cantidades de líneas de tipo tarifa."""
        return sum(item.quantity for item in self.items if item.occupies_seats)

    @property
    def items_total(self) -> int:
        return sum(item.total for item in self.items)

    @property
    def is_hold(self) -> bool:
        return self.state == ReservationStatus.HOLD

    @property
    def is_confirmed(self) -> bool:
        return self.state == ReservationStatus.CONFIRMED

    @property
    def is_cancelled(self) -> bool:
        return self.state == ReservationStatus.CANCELLED

    # === Métodos de negocio ===

    def validate_items(self) -> None:
        """Valida las líneas y que el total coincida con su suma."""
        if not self.items:
            raise ValidationError("items", "la reservación debe tener al menos una línea")
        for item in self.items:
            item.validate()
        if self.occupant_count <= 0:
            raise ValidationError("items", "se requiere al menos una línea de tarifa")
        if self.items_total != self.total_amount:
            raise ValidationError(
                "total_amount",
                f"el total {self.total_amount} no coincide con la suma de líneas {self.items_total}",
            )

    def confirm(self, now: datetime) -> None:
        """hold -> confirmed."""
        if self.state != ReservationStatus.HOLD:
            raise InvalidReservationStatusError(self.state.value, ReservationStatus.HOLD.value, "confirmar")
        self.state = ReservationStatus.CONFIRMED
        self.expires_at = None
        self.updated_at = now

    def cancel(self, now: datetime) -> None:
        """hold|confirmed -> cancelled."""
        if self.state not in (ReservationStatus.HOLD, ReservationStatus.CONFIRMED):
            raise InvalidReservationStatusError(
                self.state.value,
                [ReservationStatus.HOLD.value, ReservationStatus.CONFIRMED.value],
                "cancelar",
            )
        self.state = ReservationStatus.CANCELLED
        self.cancelled_at = now
        self.expires_at = None
        self.updated_at = now

    def restore_as_confirmed(self, now: datetime) -> None:
        """Recuperación desde carrito abandonado: vuelve directo a confirmed."""
        self.state = ReservationStatus.CONFIRMED
        self.expires_at = None
        self.cancelled_at = None
        self.updated_at = now
