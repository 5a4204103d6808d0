import logging
from datetime import timedelta

from tour_booking.application.interfaces.abandoned_cart_repo import AbandonedCartRepo
from tour_booking.application.interfaces.clock import Clock
from tour_booking.application.interfaces.reservation_repo import ReservationRepo
from tour_booking.application.interfaces.transaction_manager import TransactionManager
from tour_booking.application.results import OperationResult
from tour_booking.application.use_cases.capacity_ledger import CapacityLedger
from tour_booking.application.use_cases.reservation_state_machine import serialize_reservation
from tour_booking.domain.entities.abandoned_cart import AbandonedCart
from tour_booking.domain.entities.reservation import Reservation, ReservationStatus
from tour_booking.domain.errors import AbandonedCartNotFoundError, CapacityExceededError, DomainError


class AbandonedCartSweeper:
    """
    Mueve los holds vencidos a carritos abandonados y libera su cupo.

    Cada reservación se procesa en su propia transacción; el fallo de una no
    detiene el lote. recover() hace el camino inverso cuando el pago llega tarde.
    """

    def __init__(
        self,
        reservation_repo: ReservationRepo,
        abandoned_cart_repo: AbandonedCartRepo,
        capacity_ledger: CapacityLedger,
        transaction_manager: TransactionManager,
        clock: Clock,
        threshold_minutes: int = 7,
    ) -> None:
        self._reservation_repo = reservation_repo
        self._abandoned_cart_repo = abandoned_cart_repo
        self._capacity_ledger = capacity_ledger
        self._transaction_manager = transaction_manager
        self._clock = clock
        self._threshold_minutes = threshold_minutes
        self._logger = logging.getLogger(__name__)

    async def sweep(self) -> OperationResult:
        now = self._clock.now()
        cutoff = now - timedelta(minutes=self._threshold_minutes)
        async with self._transaction_manager.start():
            stale = list(await self._reservation_repo.list_holds_created_before(cutoff))

        moved = 0
        skipped = 0
        errors: list[dict] = []
        for reservation in stale:
            try:
                if await self._archive(reservation):
                    moved += 1
                else:
                    skipped += 1
            except Exception as exc:  # noqa: BLE001
                self._logger.error(
                    "Failed to archive abandoned reservation",
                    exc_info=exc,
                    extra={"reservation_id": reservation.id, "booking_code": reservation.booking_code},
                )
                errors.append(
                    {
                        "reservation_id": reservation.id,
                        "booking_code": reservation.booking_code,
                        "error": getattr(exc, "message", str(exc)),
                    }
                )

        stats = {
            "moved_count": moved,
            "skipped_count": skipped,
            "error_count": len(errors),
            "total_processed": len(stale),
            "errors": errors,
        }
        self._logger.info(
            "Abandoned cart sweep finished",
            extra={k: v for k, v in stats.items() if k != "errors"},
        )
        return OperationResult(
            success=True,
            code="SWEEP_COMPLETED" if not errors else "SWEEP_COMPLETED_WITH_ERRORS",
            message=f"{moved} reservaciones movidas a carritos abandonados",
            data=stats,
        )

    async def _archive(self, reservation: Reservation) -> bool:
        now = self._clock.now()
        async with self._transaction_manager.start():
            deleted = await self._reservation_repo.delete_if_state(reservation.id, ReservationStatus.HOLD)
            if not deleted:
                # confirmada (o cancelada) después de la lectura
                self._logger.info(
                    "Skipping reservation that left hold",
                    extra={"reservation_id": reservation.id},
                )
                return False
            await self._capacity_ledger.release_seats(reservation.turno_id, reservation.occupant_count)
            await self._abandoned_cart_repo.add(AbandonedCart.from_reservation(reservation, now))
        return True

    async def recover(self, booking_code: str) -> OperationResult:
        try:
            async with self._transaction_manager.start():
                cart = await self._abandoned_cart_repo.get_by_booking_code(booking_code)
                if cart is None:
                    raise AbandonedCartNotFoundError(booking_code)
                reservation = await self.restore(cart)
        except DomainError as exc:
            return OperationResult.from_error(exc)
        return OperationResult.ok(
            "RECOVERED",
            "Reservación recuperada y confirmada",
            serialize_reservation(reservation),
        )

    async def find_cart(
        self,
        reservation_id: int | None = None,
        booking_code: str | None = None,
    ) -> AbandonedCart | None:
        # el booking_code identifica al carrito sin ambigüedad; el id solo como respaldo
        if booking_code:
            return await self._abandoned_cart_repo.get_by_booking_code(booking_code)
        if reservation_id is not None:
            return await self._abandoned_cart_repo.get_by_reservation_id(reservation_id)
        return None

    async def restore(self, cart: AbandonedCart) -> Reservation:
        """
        Re-ocupa los cupos, reinserta la reservación como confirmed con su id
        original y borra el registro archivado. Debe correr en una transacción.

        Si el id original ya pertenece a otra reservación, se reinserta con un
        id nuevo. Un choque al insertar llega como ReservationConflictError.
        """
        now = self._clock.now()
        reservation = cart.to_confirmed_reservation(now)
        if reservation.id is not None and await self._reservation_repo.get(reservation.id) is not None:
            self._logger.warning(
                "Original reservation id taken, restoring with a new id",
                extra={"reservation_id": reservation.id, "booking_code": cart.booking_code},
            )
            reservation.id = None
        try:
            await self._capacity_ledger.occupy_seats(reservation.turno_id, reservation.occupant_count)
        except CapacityExceededError as exc:
            self._logger.error(
                "Cannot recover abandoned cart: capacity exhausted",
                extra={
                    "booking_code": cart.booking_code,
                    "turno_id": reservation.turno_id,
                    "shortfall": exc.shortfall,
                },
            )
            raise
        reservation = await self._reservation_repo.add(reservation)
        await self._abandoned_cart_repo.delete(cart.id)
        self._logger.info(
            "Abandoned cart recovered",
            extra={"reservation_id": reservation.id, "booking_code": reservation.booking_code},
        )
        return reservation
