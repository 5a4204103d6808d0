import asyncio

import pytest

from tour_booking.application.use_cases.capacity_ledger import CapacityLedger
from tour_booking.domain.errors import (
    CapacityExceededError,
    CapacityUnderflowError,
    TurnoNotFoundError,
    ValidationError,
)


@pytest.mark.asyncio
async def test_occupy_within_capacity(env):
    turno = await env.add_turno(max_capacity=10)

    await env.ledger.occupy_seats(turno.id, 4)

    assert await env.occupied(turno.id) == 4


@pytest.mark.asyncio
async def test_occupy_beyond_capacity_reports_shortfall_and_keeps_counter(env):
    turno = await env.add_turno(max_capacity=5, occupied=4)

    with pytest.raises(CapacityExceededError) as exc_info:
        await env.ledger.occupy_seats(turno.id, 2)

    assert exc_info.value.available == 1
    assert exc_info.value.shortfall == 1
    assert exc_info.value.details["shortfall"] == 1
    assert await env.occupied(turno.id) == 4


@pytest.mark.asyncio
async def test_zero_count_is_noop_and_negative_is_rejected(env):
    turno = await env.add_turno(max_capacity=3, occupied=1)

    await env.ledger.occupy_seats(turno.id, 0)
    await env.ledger.release_seats(turno.id, 0)
    with pytest.raises(ValidationError):
        await env.ledger.occupy_seats(turno.id, -1)

    assert await env.occupied(turno.id) == 1


@pytest.mark.asyncio
async def test_unknown_turno(env):
    with pytest.raises(TurnoNotFoundError):
        await env.ledger.occupy_seats(999, 1)
    with pytest.raises(TurnoNotFoundError):
        await env.ledger.release_seats(999, 1)


@pytest.mark.asyncio
async def test_release_more_than_occupied_fails_loudly(env, caplog):
    turno = await env.add_turno(max_capacity=10, occupied=2)

    with pytest.raises(CapacityUnderflowError):
        await env.ledger.release_seats(turno.id, 3)

    assert await env.occupied(turno.id) == 2
    assert any(r.levelname == "ERROR" and "underflow" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_release_underflow_clamps_when_configured(env):
    turno = await env.add_turno(max_capacity=10, occupied=2)
    ledger = CapacityLedger(env.turno_repo, clamp_underflow=True)

    await ledger.release_seats(turno.id, 5)

    assert await env.occupied(turno.id) == 0


@pytest.mark.asyncio
async def test_concurrent_occupy_never_exceeds_capacity(env):
    turno = await env.add_turno(max_capacity=10)

    results = await asyncio.gather(
        *(env.ledger.occupy_seats(turno.id, 1) for _ in range(25)),
        return_exceptions=True,
    )

    rejected = [r for r in results if isinstance(r, CapacityExceededError)]
    assert len(rejected) == 15
    assert await env.occupied(turno.id) == 10
