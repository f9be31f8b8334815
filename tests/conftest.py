"""
tests/conftest.py – shared fixtures.

Every orchestrator built here uses an in-memory configuration and a plugin
loader that only sees explicitly registered factories plus the built-in
plugin directory.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio

from RelayBot.config.defaults import build_default_config
from RelayBot.config.manager import ConfigManager
from RelayBot.kernel.orchestrator import BotOrchestrator
from RelayBot.kernel.signal_hub import Signal, SignalHub
from RelayBot.plugin.loader import PluginLoader
from RelayBot.store.collections import CollectionStore
from RelayBot.store.engine import StorageEngine
from RelayBot.utils.paths import get_builtin_plugins_path
from tests.fakes.fake_transport import FakeTransport

logging.getLogger("RelayBot").setLevel(logging.DEBUG)


def make_config(overrides: dict[str, Any] | None = None) -> ConfigManager:
    """In-memory config with defaults merged under ``overrides``."""
    data: dict[str, Any] = {"plugins": {"timeout": 2}}
    if overrides:
        data.update(overrides)
    return ConfigManager.from_dict(data, defaults=build_default_config())


@pytest.fixture
def config() -> ConfigManager:
    return make_config()


@pytest.fixture
def hub() -> SignalHub:
    return SignalHub()


@pytest.fixture
def loader() -> PluginLoader:
    return PluginLoader(search_paths=[get_builtin_plugins_path()])


@pytest.fixture
def bot(config: ConfigManager, hub: SignalHub, loader: PluginLoader) -> BotOrchestrator:
    return BotOrchestrator(config=config, hub=hub, loader=loader)


@pytest.fixture
def recorder(hub: SignalHub) -> list[Signal]:
    """Collects every signal emitted on the hub, in order."""
    seen: list[Signal] = []
    for kind in (
        "plugin.loaded",
        "plugin.unloaded",
        "plugin.error",
        "message.received",
        "command.handled",
        "transport.loaded",
        "transport.connected",
        "transport.disconnected",
        "transport.error",
        "system.shutdown",
    ):
        hub.connect(kind, seen.append)
    return seen


@pytest_asyncio.fixture
async def irc(bot: BotOrchestrator) -> FakeTransport:
    transport = FakeTransport("irc", config=bot.config)
    await bot.add_transport(transport)
    await transport.connect()
    return transport


@pytest_asyncio.fixture
async def store(tmp_path) -> AsyncGenerator[CollectionStore, None]:
    collections = CollectionStore(StorageEngine(str(tmp_path / "test.db")))
    yield collections
    await collections.close()
