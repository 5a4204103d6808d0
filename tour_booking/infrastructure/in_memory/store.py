import copy
from collections import defaultdict

from tour_booking.domain.entities.abandoned_cart import AbandonedCart
from tour_booking.domain.entities.agency import Agency
from tour_booking.domain.entities.payment import Payment, Refund
from tour_booking.domain.entities.reservation import Reservation
from tour_booking.domain.entities.turno import Turno
from tour_booking.domain.entities.webhook_event import ProcessedWebhookEvent


class InMemoryStore:
    """
    Tablas en memoria compartidas por los repositorios in-memory.

    Los repositorios siempre acceden a los diccionarios a través del store
    porque restore() los reemplaza al hacer rollback.
    """

    def __init__(self) -> None:
        self.reservations: dict[int, Reservation] = {}
        self.turnos: dict[int, Turno] = {}
        self.payments: dict[int, Payment] = {}
        self.refunds: dict[int, Refund] = {}
        self.abandoned_carts: dict[int, AbandonedCart] = {}
        self.webhook_events: dict[str, ProcessedWebhookEvent] = {}
        self.agencies: dict[int, Agency] = {}
        self.sequences: dict[str, int] = defaultdict(int)

    def next_id(self, table: str) -> int:
        self.sequences[table] += 1
        return self.sequences[table]

    def bump_sequence(self, table: str, used_id: int) -> None:
        if used_id > self.sequences[table]:
            self.sequences[table] = used_id

    def snapshot(self) -> dict:
        return copy.deepcopy(self.__dict__)

    def restore(self, snapshot: dict) -> None:
        self.__dict__.update(snapshot)
