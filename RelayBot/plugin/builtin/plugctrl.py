"""
插件控制插件 - 在聊天中加载、卸载、重载插件
Plugin control plugin - load, unload and reload plugins from chat.
"""

from __future__ import annotations

from RelayBot.plugin.base import Plugin


class PluginControlPlugin(Plugin):
    """插件控制 / Plugin control."""

    name = "Plugin Control Plugin"
    version = "1.0"

    async def cmd_load(
        self, transport_id: str, sender: str, channel: str, name: str | None
    ) -> None:
        """加载插件 / Load a plugin."""
        name = (name or "").strip()
        if not name:
            await self.report_error(transport_id, channel, "usage: load <plugin>", 400)
            return
        if self.bot.has_plugin(name):
            await self.report_error(
                transport_id, channel, f"{name} plugin is already loaded"
            )
            return

        if await self.bot.load_plugin(name):
            plugin = self.bot.get_plugin(name)
            await self.bot.notice(
                transport_id, channel, f"{plugin.name}/{plugin.version} loaded"
            )
            return

        await self.report_error(transport_id, channel, f"{name} plugin failed to load")

    async def cmd_unload(
        self, transport_id: str, sender: str, channel: str, name: str | None
    ) -> None:
        """卸载插件 / Unload a plugin."""
        name = (name or "").strip()
        plugin = self.bot.get_plugin(name)
        if plugin is None:
            await self.report_error(transport_id, channel, f"{name} plugin is not loaded")
            return

        label = f"{plugin.name}/{plugin.version}"
        if await self.bot.unload_plugin(name):
            await self.bot.notice(transport_id, channel, f"{label} unloaded")
            return

        await self.report_error(transport_id, channel, f"{name} plugin failed to unload")

    async def cmd_reload(
        self, transport_id: str, sender: str, channel: str, name: str | None
    ) -> None:
        """
        重载插件，未加载时直接加载
        Reload a plugin; one that is not loaded is simply loaded.
        """
        name = (name or "").strip()
        if not self.bot.has_plugin(name):
            await self.cmd_load(transport_id, sender, channel, name)
            return

        if await self.bot.reload_plugin(name):
            plugin = self.bot.get_plugin(name)
            await self.bot.notice(
                transport_id, channel, f"{plugin.name}/{plugin.version} reloaded"
            )
            return

        await self.report_error(transport_id, channel, f"{name} plugin failed to reload")
