from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

from tour_booking.application.interfaces.transaction_manager import TransactionManager


class SQLAlchemyTransactionManager(TransactionManager):
    """
    Una transacción por bloque start().

    Si la sesión ya está dentro de una transacción el bloque se une a ella, así
    cancel_in_transaction y el registro del reembolso comparten el mismo COMMIT.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @asynccontextmanager
    async def start(self) -> AsyncIterator[None]:
        if self._session.in_transaction():
            yield
            return
        async with self._session.begin():
            yield
