"""
SignalHub behaviour tests.
"""

from __future__ import annotations

import logging

import pytest

from RelayBot.kernel.signal_hub import Signal, SignalHub, SignalKind, SignalPriority


@pytest.mark.asyncio
async def test_handlers_run_in_priority_then_connection_order() -> None:
    hub = SignalHub()
    order: list[str] = []
    hub.connect(SignalKind.SYSTEM_READY, lambda s: order.append("normal-1"))
    hub.connect(SignalKind.SYSTEM_READY, lambda s: order.append("low"), SignalPriority.LOW)
    hub.connect(SignalKind.SYSTEM_READY, lambda s: order.append("high"), SignalPriority.HIGH)
    hub.connect(SignalKind.SYSTEM_READY, lambda s: order.append("normal-2"))

    await hub.emit_new(SignalKind.SYSTEM_READY)

    assert order == ["high", "normal-1", "normal-2", "low"]


@pytest.mark.asyncio
async def test_string_and_enum_kinds_are_interchangeable() -> None:
    hub = SignalHub()
    seen: list[Signal] = []
    hub.connect("plugin.loaded", seen.append)

    await hub.emit_new(SignalKind.PLUGIN_LOADED, payload="x")

    assert [s.payload for s in seen] == ["x"]


@pytest.mark.asyncio
async def test_async_handlers_are_awaited_and_once_slots_removed() -> None:
    hub = SignalHub()
    seen: list[str] = []

    async def handler(signal: Signal) -> None:
        seen.append(signal.source)

    hub.connect(SignalKind.MESSAGE_RECEIVED, handler, once=True)
    await hub.emit_new(SignalKind.MESSAGE_RECEIVED, source="a")
    await hub.emit_new(SignalKind.MESSAGE_RECEIVED, source="b")

    assert seen == ["a"]
    assert hub.slot_count(SignalKind.MESSAGE_RECEIVED) == 0


@pytest.mark.asyncio
async def test_handler_errors_never_reach_the_emitter(caplog) -> None:
    hub = SignalHub()
    seen: list[str] = []

    def broken(signal: Signal) -> None:
        raise RuntimeError("observer failed")

    hub.connect(SignalKind.PLUGIN_ERROR, broken)
    hub.connect(SignalKind.PLUGIN_ERROR, lambda s: seen.append("after"))

    with caplog.at_level(logging.ERROR):
        await hub.emit_new(SignalKind.PLUGIN_ERROR)

    assert seen == ["after"]
    assert "plugin.error" in caplog.text


@pytest.mark.asyncio
async def test_consumed_signal_stops_propagation() -> None:
    hub = SignalHub()
    seen: list[str] = []
    hub.connect(SignalKind.COMMAND_HANDLED, lambda s: s.consume(), SignalPriority.HIGHEST)
    hub.connect(SignalKind.COMMAND_HANDLED, lambda s: seen.append("late"))

    signal = await hub.emit_new(SignalKind.COMMAND_HANDLED)

    assert signal.consumed
    assert seen == []


@pytest.mark.asyncio
async def test_filter_function_gates_handler() -> None:
    hub = SignalHub()
    seen: list[str] = []
    hub.connect(
        SignalKind.TRANSPORT_CONNECTED,
        lambda s: seen.append(s.source),
        filter_fn=lambda s: s.source == "irc",
    )

    await hub.emit_new(SignalKind.TRANSPORT_CONNECTED, source="slack")
    await hub.emit_new(SignalKind.TRANSPORT_CONNECTED, source="irc")

    assert seen == ["irc"]


def test_disconnect_by_slot_and_by_owner() -> None:
    hub = SignalHub()
    a = hub.connect(SignalKind.SYSTEM_READY, print, owner="karma")
    hub.connect(SignalKind.PLUGIN_LOADED, print, owner="karma")
    hub.connect(SignalKind.PLUGIN_LOADED, print, owner="echo")

    assert hub.disconnect(a) is True
    assert hub.disconnect(a) is False
    assert hub.disconnect_owner("karma") == 1
    assert hub.disconnect_owner("") == 0
    assert hub.slot_count() == 1
    assert hub.slot_count(owner="echo") == 1

    hub.clear()
    assert hub.slot_count() == 0
