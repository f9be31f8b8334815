"""
Transport state machine and outbound queueing tests.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from RelayBot.kernel.errors import TransportStateError
from RelayBot.transport.base import TransportStatus
from tests.fakes.fake_transport import FakeTransport


@pytest.mark.asyncio
async def test_connect_reaches_ready_and_calls_on_ready_once() -> None:
    transport = FakeTransport()
    on_ready = MagicMock()

    assert transport.status is TransportStatus.IDLE
    result = await transport.connect(on_ready)

    assert result is transport
    assert transport.status is TransportStatus.READY
    on_ready.assert_called_once_with()


@pytest.mark.asyncio
async def test_async_on_ready_is_awaited() -> None:
    transport = FakeTransport()
    on_ready = AsyncMock()

    await transport.connect(on_ready)

    on_ready.assert_awaited_once()


@pytest.mark.asyncio
async def test_messages_sent_before_ready_are_flushed_in_order() -> None:
    transport = FakeTransport()
    await transport.say("#a", "first")
    await transport.notice("#a", "second")

    assert transport.sent == []
    assert transport.pending == 2

    await transport.connect()

    assert transport.sent == [("say", "#a", "first"), ("notice", "#a", "second")]
    assert transport.pending == 0


@pytest.mark.asyncio
async def test_messages_after_disconnect_are_dropped() -> None:
    transport = FakeTransport()
    await transport.connect()
    on_done = MagicMock()

    await transport.disconnect("farewell", on_done)
    await transport.say("#a", "too late")

    assert transport.status is TransportStatus.DISCONNECTED
    assert transport.farewell == "farewell"
    assert transport.sent == []
    on_done.assert_called_once_with()


@pytest.mark.asyncio
async def test_failed_connect_moves_to_error_and_raises() -> None:
    transport = FakeTransport(fail_connect=True)

    with pytest.raises(ConnectionError):
        await transport.connect()

    assert transport.status is TransportStatus.ERROR


@pytest.mark.asyncio
async def test_error_state_can_retry_connect() -> None:
    transport = FakeTransport(fail_connect=True)
    with pytest.raises(ConnectionError):
        await transport.connect()

    transport.fail_connect = False
    await transport.connect()

    assert transport.status is TransportStatus.READY
    assert transport.open_calls == 2


@pytest.mark.asyncio
async def test_disconnected_is_terminal() -> None:
    transport = FakeTransport()
    await transport.connect()
    await transport.disconnect()

    with pytest.raises(TransportStateError):
        await transport.connect()


@pytest.mark.asyncio
async def test_disconnect_on_idle_transport_only_calls_on_done() -> None:
    transport = FakeTransport()
    on_done = MagicMock()

    await transport.disconnect("bye", on_done)

    assert transport.status is TransportStatus.IDLE
    assert transport.close_calls == 0
    on_done.assert_called_once_with()


@pytest.mark.asyncio
async def test_failing_close_still_disconnects_and_calls_on_done() -> None:
    transport = FakeTransport(fail_disconnect=True)
    await transport.connect()
    on_done = MagicMock()

    with pytest.raises(ConnectionError):
        await transport.disconnect(None, on_done)

    assert transport.status is TransportStatus.DISCONNECTED
    on_done.assert_called_once_with()


def test_illegal_transition_raises() -> None:
    transport = FakeTransport()

    with pytest.raises(TransportStateError):
        transport._set_status(TransportStatus.READY)


@pytest.mark.asyncio
async def test_submit_forwards_to_message_handler() -> None:
    transport = FakeTransport("irc")
    assert await transport.submit("alice", "#a", "hi") is False

    handler = AsyncMock(return_value=True)
    transport.set_message_handler(handler)

    assert await transport.submit("alice", "#a", "hi") is True
    handler.assert_awaited_once_with("irc", "alice", "#a", "hi")


def test_settings_are_read_from_the_transport_section() -> None:
    from tests.conftest import make_config

    config = make_config({"transports": {"irc": {"nick": "relay"}}})
    transport = FakeTransport("irc", config=config)

    assert transport.setting("nick") == "relay"
    assert transport.setting("missing", 7) == 7
    assert transport.get("trigger") == "!"
