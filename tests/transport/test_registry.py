"""
Transport registry lookups and enable-flag driven creation.
"""

from __future__ import annotations

import pytest

from RelayBot.kernel.orchestrator import BotOrchestrator
from RelayBot.transport.adapters.irc_adapter import IRCTransport
from RelayBot.transport.adapters.slack_adapter import SlackTransport
from RelayBot.transport.registry import create_transport, enabled_transports, transport_class
from tests.conftest import make_config


def test_transport_class_lookup() -> None:
    assert transport_class("irc") is IRCTransport
    assert transport_class("slack") is SlackTransport
    assert transport_class("telegraph") is None


def test_enabled_transports_follow_flags() -> None:
    config = make_config({"transports": {"slack": {"enabled": True}, "matrix": "nope"}})

    assert enabled_transports(config) == ["slack", "irc"]
    assert create_transport("unknown", config) is None


@pytest.mark.asyncio
async def test_load_transports_registers_enabled_ones() -> None:
    config = make_config({"transports": {"irc": {"enabled": False}, "slack": {"enabled": True}}})
    bot = BotOrchestrator(config=config)

    assert await bot.load_transports() == 1
    assert await bot.load_transports() == 0
    assert isinstance(bot.get_transport("slack"), SlackTransport)
    assert bot.get_transport("irc") is None
