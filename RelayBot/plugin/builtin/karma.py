"""
积分插件 - 通过 ``nick++`` / ``nick--`` 调整频道成员的积分
Karma plugin - adjusts a channel member's karma with ``nick++`` / ``nick--``.

积分保存在存储层的 ``karma`` 集合中。
Karma is persisted in the store's ``karma`` collection.
"""

from __future__ import annotations

import logging
import re
import time

from RelayBot.kernel.errors import CommandError
from RelayBot.plugin.base import Plugin

logger = logging.getLogger(__name__)

KARMA_RE = re.compile(r"^\s*([^:\s]+):?\s?(\+\+|--)\s*$")

KARMA_FIELDS = {
    "id": {"type": "INTEGER", "primary": True, "autoincrement": True},
    "nick": {"type": "TEXT", "notnull": True, "unique": True},
    "value": {"type": "INTEGER", "notnull": True, "default": 0},
    "last_updated": {"type": "INTEGER", "notnull": True},
}


def _points(value: int) -> str:
    return f"{value} karma point{'' if value == 1 else 's'}"


class KarmaPlugin(Plugin):
    """积分插件 / Karma plugin."""

    name = "Karma Plugin"
    version = "0.2.0"

    collection = "karma"

    async def on_load(self) -> None:
        if self.bot.store is None:
            raise RuntimeError("karma plugin requires a store")
        await self.bot.store.create_collection(self.collection, KARMA_FIELDS)

    async def handle(
        self, transport_id: str, sender: str, channel: str, text: str
    ) -> bool:
        match = KARMA_RE.match(text)
        if match is None:
            return await super().handle(transport_id, sender, channel, text)

        nick = match.group(1).lower()
        delta = 1 if match.group(2) == "++" else -1

        if nick not in self.bot.users(transport_id, channel):
            logger.debug("未知昵称 %s，跳过", nick)
            return True

        if sender.lower() == nick:
            await self.report_error(
                transport_id, channel, "You can not alter your own karma", 403
            )
            return True

        value = await self.change(nick, delta)
        await self.bot.notice(transport_id, channel, f"{nick} now has {_points(value)}")
        return True

    async def change(self, nick: str, delta: int) -> int:
        """
        调整积分并返回新值
        Apply ``delta`` to a nick's karma and return the new value.
        """
        store = self.bot.store
        now = int(time.time())
        row = await store.fetch_one(self.collection, where={"nick": nick})
        if row is None:
            await store.put(
                self.collection, {"nick": nick, "value": delta, "last_updated": now}
            )
            return delta

        value = row["value"] + delta
        await store.update_by_id(
            self.collection, row["id"], {"value": value, "last_updated": now}
        )
        logger.debug("积分变化: %s %+d -> %d", nick, delta, value)
        return value

    async def cmd_karma(
        self, transport_id: str, sender: str, channel: str, nick: str | None
    ) -> None:
        """查询积分 / Show a nick's karma."""
        nick = (nick or sender).strip().lower()
        if nick not in self.bot.users(transport_id, channel):
            raise CommandError(f"Unknown user '{nick}'", 404)

        row = await self.bot.store.fetch_one(self.collection, where={"nick": nick})
        value = row["value"] if row else 0
        await self.bot.notice(transport_id, channel, f"{nick} has {_points(value)}")
