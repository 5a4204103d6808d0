from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Protocol


class TransactionManager(Protocol):
    """Unidad de trabajo; un start() anidado se une a la transacción en curso."""

    @asynccontextmanager
    async def start(self) -> AsyncIterator[None]:
        yield
