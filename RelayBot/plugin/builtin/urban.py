"""
Urban Dictionary 插件
Urban Dictionary plugin.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp

from RelayBot.kernel.errors import CommandError
from RelayBot.plugin.base import Plugin
from RelayBot.utils import io

logger = logging.getLogger(__name__)


def format_definition(entry: dict[str, Any]) -> str:
    """
    格式化一条释义
    Format one definition entry.
    """
    definition = "\n".join(
        f"> {line}" for line in str(entry.get("definition", "")).splitlines()
    )
    return (
        f"{entry.get('word', '')} "
        f"(+{entry.get('thumbs_up', 0)}/-{entry.get('thumbs_down', 0)}):\n"
        f"{definition}"
    )


class UrbanDictionaryPlugin(Plugin):
    """Urban Dictionary 查询 / Urban Dictionary lookup."""

    name = "Urban Dictionary Plugin"
    version = "0.1"

    async def cmd_urban(
        self, transport_id: str, sender: str, channel: str, query: str | None
    ) -> None:
        """查询一个词条 / Look up a term."""
        query = (query or "").strip()
        if not query:
            raise CommandError("usage: urban <term>", 400)

        try:
            data = await io.fetch_json(
                self.setting("api_url", "https://api.urbandictionary.com/v0/define"),
                params={"term": query},
            )
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            logger.warning("Urban Dictionary 查询失败: %s (%s)", query, exc)
            raise CommandError("lookup failed", 503) from exc
        entries = (data or {}).get("list") or []
        if not entries or not entries[0].get("definition"):
            await self.bot.notice(transport_id, channel, f"No results found for: {query}")
            return

        await self.bot.notice(transport_id, channel, format_definition(entries[0]))

    cmd_ud = cmd_urban
