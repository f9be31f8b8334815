"""
插件模块 - 插件基类、命令匹配与加载器
Plugin module - plugin base, command matching and loader.
"""

from RelayBot.plugin.base import Plugin
from RelayBot.plugin.commands import (
    COMMAND_PREFIX,
    CommandDescriptor,
    collect_commands,
    match_command,
)
from RelayBot.plugin.loader import PluginLoader, sanitize_name

__all__ = [
    "Plugin",
    "PluginLoader",
    "CommandDescriptor",
    "COMMAND_PREFIX",
    "collect_commands",
    "match_command",
    "sanitize_name",
]
