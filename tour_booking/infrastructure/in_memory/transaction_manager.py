from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from contextvars import ContextVar

from tour_booking.application.interfaces.transaction_manager import TransactionManager
from tour_booking.infrastructure.in_memory.store import InMemoryStore

_in_transaction: ContextVar[bool] = ContextVar("in_memory_in_transaction", default=False)


class InMemoryTransactionManager(TransactionManager):
    """
    Rollback por snapshot del store.

    Un start() anidado dentro de la misma tarea se une a la transacción
    externa. Pensado para tests y modo demo: no aísla tareas concurrentes.
    """

    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    @asynccontextmanager
    async def start(self) -> AsyncIterator[None]:
        if _in_transaction.get():
            yield
            return
        snapshot = self._store.snapshot()
        token = _in_transaction.set(True)
        try:
            yield
        except BaseException:
            self._store.restore(snapshot)
            raise
        finally:
            _in_transaction.reset(token)
