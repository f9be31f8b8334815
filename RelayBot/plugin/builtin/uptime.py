"""
运行时长插件
Uptime plugin.
"""

from __future__ import annotations

from RelayBot.plugin.base import Plugin

_UNITS = (
    ("day", 24 * 60 * 60),
    ("hour", 60 * 60),
    ("minute", 60),
    ("second", 1),
)


def format_duration(seconds: float) -> str:
    """
    把秒数格式化为 "1 day, 2 hours, 5 seconds"
    Format seconds as ``"1 day, 2 hours, 5 seconds"``.
    """
    remaining = int(seconds)
    parts = []
    for unit, size in _UNITS:
        count, remaining = divmod(remaining, size)
        if count >= 1:
            parts.append(f"{count} {unit}{'s' if count > 1 else ''}")
    return ", ".join(parts) or "0 seconds"


class UptimePlugin(Plugin):
    """运行时长 / Uptime."""

    name = "Uptime Plugin"
    version = "1.0"

    async def cmd_uptime(
        self, transport_id: str, sender: str, channel: str, args: str | None
    ) -> None:
        """报告机器人已运行的时长 / Report how long the bot has been running."""
        await self.bot.notice(
            transport_id, channel, f"Uptime: {format_duration(self.bot.uptime)}"
        )

    async def cmd_downtime(
        self, transport_id: str, sender: str, channel: str, args: str | None
    ) -> None:
        await self.bot.say(transport_id, channel, f"{sender}: What downtime?")
