"""Tests del notificador HTTP y de su uso a través del NotificationDispatcher."""

import json
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from tour_booking.application.interfaces.notifier import NotificationMessage
from tour_booking.application.notifications import NotificationDispatcher
from tour_booking.infrastructure.gateways.http_notifier import HttpNotifier

BASE_URL = "http://mailer.test/api/"


def _message() -> NotificationMessage:
    return NotificationMessage(
        template="confirm",
        to="cliente@example.com",
        subject="Reserva confirmada",
        data={"booking_code": "RES-ABCD1234"},
    )


@pytest.mark.asyncio
async def test_send_posts_message_to_send_endpoint():
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(202, json={"queued": True})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        await HttpNotifier(BASE_URL, client=client).send(_message())

    assert len(requests) == 1
    assert str(requests[0].url) == "http://mailer.test/api/send"
    assert requests[0].method == "POST"
    assert json.loads(requests[0].content) == {
        "template": "confirm",
        "to": "cliente@example.com",
        "subject": "Reserva confirmada",
        "data": {"booking_code": "RES-ABCD1234"},
    }


@pytest.mark.asyncio
async def test_send_raises_on_server_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(503, json={"error": "unavailable"}))

    async with httpx.AsyncClient(transport=transport) as client:
        with pytest.raises(httpx.HTTPStatusError):
            await HttpNotifier(BASE_URL, client=client).send(_message())


@pytest.mark.asyncio
async def test_dispatcher_logs_server_error_without_propagating(caplog):
    transport = httpx.MockTransport(lambda request: httpx.Response(500))

    async with httpx.AsyncClient(transport=transport) as client:
        dispatcher = NotificationDispatcher(HttpNotifier(BASE_URL, client=client))
        with caplog.at_level(logging.ERROR):
            dispatcher.dispatch(_message())
            await dispatcher.drain()

    failures = [r for r in caplog.records if r.getMessage() == "Notification delivery failed"]
    assert len(failures) == 1
    assert failures[0].template == "confirm"


@pytest.mark.asyncio
async def test_dispatcher_logs_timeout_without_propagating(caplog):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        dispatcher = NotificationDispatcher(HttpNotifier(BASE_URL, timeout_seconds=0.1, client=client))
        with caplog.at_level(logging.ERROR):
            dispatcher.dispatch(_message())
            await dispatcher.drain()

    failure = next(r for r in caplog.records if r.getMessage() == "Notification delivery failed")
    assert isinstance(failure.exc_info[1], httpx.ReadTimeout)


@pytest.mark.asyncio
async def test_send_without_injected_client_opens_one_with_timeout():
    response = MagicMock()
    response.raise_for_status = MagicMock()
    mock_client = AsyncMock()
    mock_client.__aenter__.return_value = mock_client
    mock_client.post.return_value = response

    with patch("httpx.AsyncClient", return_value=mock_client) as mock_client_cls:
        await HttpNotifier("http://mailer.test", timeout_seconds=2.5).send(_message())

    mock_client_cls.assert_called_once_with(timeout=2.5)
    assert mock_client.post.call_args.args[0] == "http://mailer.test/send"
    response.raise_for_status.assert_called_once()
