"""
回声插件 - 把参数原样说回频道
Echo plugin - says its arguments back to the channel.
"""

from __future__ import annotations

from RelayBot.plugin.base import Plugin


class EchoPlugin(Plugin):
    """回声插件 / Echo plugin."""

    name = "Echo Plugin"
    version = "1.0"

    async def cmd_echo(
        self, transport_id: str, sender: str, channel: str, args: str | None
    ) -> None:
        """把文本说回频道 / Say the text back."""
        if args:
            await self.bot.say(transport_id, channel, args)
