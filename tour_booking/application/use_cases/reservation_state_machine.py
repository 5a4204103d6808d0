import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING

from tour_booking.application.interfaces.clock import Clock
from tour_booking.application.interfaces.notifier import NotificationMessage
from tour_booking.application.interfaces.reservation_repo import ReservationRepo
from tour_booking.application.interfaces.transaction_manager import TransactionManager
from tour_booking.application.notifications import NotificationDispatcher
from tour_booking.application.results import OperationResult
from tour_booking.application.use_cases.capacity_ledger import CapacityLedger
from tour_booking.domain.entities.reservation import Reservation, ReservationItem, ReservationStatus
from tour_booking.domain.errors import (
    DomainError,
    InvalidReservationStatusError,
    ReservationAlreadyCancelledError,
    ReservationNotFoundError,
)
from tour_booking.domain.value_objects.booking_code import BookingCode

if TYPE_CHECKING:
    from tour_booking.application.use_cases.abandoned_cart_sweeper import AbandonedCartSweeper


@dataclass
class CreateHoldCommand:
    turno_id: int
    agency_id: int
    items: list[ReservationItem]
    currency: str = "USD"
    customer_id: int | None = None
    customer_email: str | None = None
    customer_name: str | None = None
    language: str = "es"
    metadata: dict[str, str] = field(default_factory=dict)


def serialize_reservation(reservation: Reservation) -> dict:
    return {
        "reservation_id": reservation.id,
        "booking_code": reservation.booking_code,
        "state": reservation.state.value,
        "turno_id": reservation.turno_id,
        "agency_id": reservation.agency_id,
        "total_amount": reservation.total_amount,
        "currency": reservation.currency,
        "occupant_count": reservation.occupant_count,
        "expires_at": reservation.expires_at.isoformat() if reservation.expires_at else None,
        "cancelled_at": reservation.cancelled_at.isoformat() if reservation.cancelled_at else None,
    }


class ReservationStateMachine:
    """
    Ciclo de vida de una reservación: hold -> confirmed -> cancelled.

    Las transiciones se aplican con UPDATE condicionado al estado esperado, de
    modo que dos transiciones concurrentes no se pisan. El paso hold -> abandoned
    pertenece exclusivamente al AbandonedCartSweeper.
    """

    def __init__(
        self,
        reservation_repo: ReservationRepo,
        capacity_ledger: CapacityLedger,
        transaction_manager: TransactionManager,
        clock: Clock,
        notifications: NotificationDispatcher,
        hold_minutes: int = 5,
        sweeper: "AbandonedCartSweeper | None" = None,
    ) -> None:
        self._reservation_repo = reservation_repo
        self._capacity_ledger = capacity_ledger
        self._transaction_manager = transaction_manager
        self._clock = clock
        self._notifications = notifications
        self._hold_minutes = hold_minutes
        self._sweeper = sweeper
        self._logger = logging.getLogger(__name__)

    def attach_sweeper(self, sweeper: "AbandonedCartSweeper") -> None:
        self._sweeper = sweeper

    async def create_hold(self, command: CreateHoldCommand) -> OperationResult:
        now = self._clock.now()
        items = [
            ReservationItem(
                item_type=item.item_type,
                quantity=item.quantity,
                unit_price=item.unit_price,
                catalog_ref_id=item.catalog_ref_id,
                position=position,
            )
            for position, item in enumerate(command.items)
        ]
        reservation = Reservation(
            booking_code=BookingCode.generate().value,
            turno_id=command.turno_id,
            agency_id=command.agency_id,
            customer_id=command.customer_id,
            customer_email=command.customer_email,
            customer_name=command.customer_name,
            language=command.language,
            state=ReservationStatus.HOLD,
            total_amount=sum(item.total for item in items),
            currency=command.currency.upper(),
            created_at=now,
            updated_at=now,
            expires_at=now + timedelta(minutes=self._hold_minutes),
            items=items,
        )
        try:
            reservation.validate_items()
            async with self._transaction_manager.start():
                await self._capacity_ledger.occupy_seats(reservation.turno_id, reservation.occupant_count)
                reservation = await self._reservation_repo.add(reservation)
        except DomainError as exc:
            self._logger.info(
                "Hold rejected",
                extra={"turno_id": command.turno_id, "code": exc.code},
            )
            return OperationResult.from_error(exc)

        self._logger.info(
            "Hold created",
            extra={
                "reservation_id": reservation.id,
                "booking_code": reservation.booking_code,
                "turno_id": reservation.turno_id,
                "occupants": reservation.occupant_count,
            },
        )
        return OperationResult.ok("HOLD_CREATED", "Reservación en hold", serialize_reservation(reservation))

    async def confirm(self, reservation_id: int, booking_code: str | None = None) -> OperationResult:
        """
        hold -> confirmed. Idempotente: una reservación ya confirmada no
        dispara efectos secundarios ni un segundo correo.

        Si la reservación ya fue barrida a carritos abandonados, se recupera
        (por booking_code o, sin él, por id) y queda confirmada. Cuando llega
        booking_code, la fila viva se valida contra él antes de tocarla.
        """
        now = self._clock.now()
        try:
            async with self._transaction_manager.start():
                reservation = await self._find_live(reservation_id, booking_code)
                if reservation is None:
                    reservation = await self._recover_archived(reservation_id, booking_code)
                    code = "RECOVERED_AND_CONFIRMED"
                elif reservation.is_confirmed:
                    code = "ALREADY_CONFIRMED"
                else:
                    self._ensure_confirmable(reservation)
                    applied = await self._reservation_repo.update_state(
                        reservation.id, [ReservationStatus.HOLD], ReservationStatus.CONFIRMED, now
                    )
                    if applied:
                        reservation.confirm(now)
                        code = "CONFIRMED"
                    else:
                        reservation, code = await self._resolve_lost_race(reservation.id, booking_code)
        except DomainError as exc:
            self._logger.warning(
                "Reservation confirmation rejected",
                extra={"reservation_id": reservation_id, "code": exc.code},
            )
            return OperationResult.from_error(exc)

        if code == "ALREADY_CONFIRMED":
            return OperationResult.ok(code, "La reservación ya estaba confirmada", serialize_reservation(reservation))

        self._logger.info(
            "Reservation confirmed",
            extra={"reservation_id": reservation.id, "booking_code": reservation.booking_code, "code": code},
        )
        self._notify_confirmed(reservation)
        return OperationResult.ok(code, "Reservación confirmada", serialize_reservation(reservation))

    async def cancel(self, reservation_id: int) -> OperationResult:
        try:
            async with self._transaction_manager.start():
                reservation = await self.cancel_in_transaction(reservation_id)
        except DomainError as exc:
            return OperationResult.from_error(exc)
        return OperationResult.ok("CANCELLED", "Reservación cancelada", serialize_reservation(reservation))

    async def cancel_in_transaction(self, reservation_id: int) -> Reservation:
        """hold|confirmed -> cancelled y libera los cupos; debe correr dentro de una transacción."""
        now = self._clock.now()
        reservation = await self._reservation_repo.get(reservation_id)
        if reservation is None:
            raise ReservationNotFoundError(reservation_id)
        if reservation.is_cancelled:
            raise ReservationAlreadyCancelledError(reservation_id)

        previous_state = reservation.state
        reservation.cancel(now)
        applied = await self._reservation_repo.update_state(
            reservation_id, [previous_state], ReservationStatus.CANCELLED, now
        )
        if not applied:
            current = await self._reservation_repo.get(reservation_id)
            current_state = current.state.value if current else "missing"
            raise InvalidReservationStatusError(current_state, previous_state.value, "cancelar")
        await self._capacity_ledger.release_seats(reservation.turno_id, reservation.occupant_count)
        self._logger.info(
            "Reservation cancelled",
            extra={"reservation_id": reservation_id, "previous_state": previous_state.value},
        )
        return reservation

    def _ensure_confirmable(self, reservation: Reservation) -> None:
        if reservation.is_cancelled:
            raise InvalidReservationStatusError(
                reservation.state.value, ReservationStatus.HOLD.value, "confirmar"
            )

    async def _find_live(self, reservation_id: int, booking_code: str | None) -> Reservation | None:
        reservation = await self._reservation_repo.get(reservation_id)
        if reservation is None or not booking_code or reservation.booking_code == booking_code:
            return reservation
        # el id del metadata pertenece hoy a otra reservación
        self._logger.warning(
            "Reservation id does not match booking code",
            extra={
                "reservation_id": reservation_id,
                "booking_code": booking_code,
                "live_booking_code": reservation.booking_code,
            },
        )
        return await self._reservation_repo.get_by_booking_code(booking_code)

    async def _resolve_lost_race(self, reservation_id: int, booking_code: str | None) -> tuple[Reservation, str]:
        current = await self._reservation_repo.get(reservation_id)
        if current is None:
            # el sweeper la archivó entre la lectura y el update
            return await self._recover_archived(reservation_id, booking_code), "RECOVERED_AND_CONFIRMED"
        if current.is_confirmed:
            return current, "ALREADY_CONFIRMED"
        raise InvalidReservationStatusError(current.state.value, ReservationStatus.HOLD.value, "confirmar")

    async def _recover_archived(self, reservation_id: int, booking_code: str | None) -> Reservation:
        if self._sweeper is None:
            raise ReservationNotFoundError(reservation_id)
        cart = await self._sweeper.find_cart(reservation_id=reservation_id, booking_code=booking_code)
        if cart is None:
            raise ReservationNotFoundError(reservation_id)
        self._logger.warning(
            "Confirming reservation from abandoned cart",
            extra={"reservation_id": reservation_id, "booking_code": cart.booking_code},
        )
        return await self._sweeper.restore(cart)

    def _notify_confirmed(self, reservation: Reservation) -> None:
        template = "confirm.en" if reservation.language == "en" else "confirm"
        self._notifications.dispatch(
            NotificationMessage(
                template=template,
                to=reservation.customer_email or "",
                subject="Reservation confirmed" if reservation.language == "en" else "Reserva confirmada",
                data={
                    "booking_code": reservation.booking_code,
                    "customer_name": reservation.customer_name,
                    "total_amount": reservation.total_amount,
                    "currency": reservation.currency,
                },
            )
        )
