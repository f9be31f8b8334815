"""
Fake Transport for Testing
==========================

A transport that never touches the network. Sends are recorded so tests
can assert on what the bot said, and failures can be switched on.
"""

from __future__ import annotations

import asyncio
from typing import Any

from RelayBot.transport.base import Transport


class FakeTransport(Transport):
    """In-memory transport recording every delivered message."""

    name = "Fake Transport"
    version = "0.0.1"

    def __init__(
        self,
        transport_id: str = "fake",
        config: Any = None,
        fail_connect: bool = False,
        fail_send: bool = False,
        fail_disconnect: bool = False,
        connect_delay: float = 0.0,
    ) -> None:
        self.id = transport_id
        super().__init__(config)
        self.fail_connect = fail_connect
        self.fail_send = fail_send
        self.fail_disconnect = fail_disconnect
        self.connect_delay = connect_delay
        self.sent: list[tuple[str, str, str]] = []
        self.rosters: dict[str, list[str]] = {}
        self.farewell: str | None = None
        self.open_calls = 0
        self.close_calls = 0

    async def open(self) -> None:
        self.open_calls += 1
        if self.connect_delay:
            await asyncio.sleep(self.connect_delay)
        if self.fail_connect:
            raise ConnectionError(f"{self.id}: connection refused")

    async def close(self, farewell: str | None = None) -> None:
        self.close_calls += 1
        self.farewell = farewell
        if self.fail_disconnect:
            raise ConnectionError(f"{self.id}: close failed")

    async def send_message(self, channel: str, text: str, notice: bool = False) -> None:
        if self.fail_send:
            raise ConnectionError(f"{self.id}: send failed")
        self.sent.append(("notice" if notice else "say", channel, text))

    def users(self, channel: str) -> list[str]:
        return [u.lower() for u in self.rosters.get(channel, [])]

    # helpers
    def said(self) -> list[tuple[str, str]]:
        return [(c, t) for kind, c, t in self.sent if kind == "say"]

    def noticed(self) -> list[tuple[str, str]]:
        return [(c, t) for kind, c, t in self.sent if kind == "notice"]
