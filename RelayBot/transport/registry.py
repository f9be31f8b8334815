"""
传输层注册表 - 按名称延迟导入内置适配器
Transport registry - lazily imports built-in adapters by name.

适配器依赖的第三方库只有在对应传输层启用时才会被导入。
An adapter's third-party library is only imported once that transport is enabled.
"""

from __future__ import annotations

import importlib
import logging
from typing import Any

from RelayBot.transport.base import Transport

logger = logging.getLogger(__name__)

# 传输层 id -> (模块路径, 类名)
BUILTIN_TRANSPORTS: dict[str, tuple[str, str]] = {
    "irc": ("RelayBot.transport.adapters.irc_adapter", "IRCTransport"),
    "slack": ("RelayBot.transport.adapters.slack_adapter", "SlackTransport"),
}


def transport_class(transport_id: str) -> type[Transport] | None:
    """
    按 id 查找内置传输层类
    Look up a built-in transport class by id.
    """
    entry = BUILTIN_TRANSPORTS.get(transport_id)
    if entry is None:
        logger.warning("未知的传输层类型: %s", transport_id)
        return None
    module_path, class_name = entry
    module = importlib.import_module(module_path)
    return getattr(module, class_name)


def create_transport(transport_id: str, config: Any) -> Transport | None:
    """创建一个传输层实例 / Create a transport instance."""
    cls = transport_class(transport_id)
    if cls is None:
        return None
    return cls(config)


def enabled_transports(config: Any) -> list[str]:
    """
    配置中启用的传输层 id（按配置顺序）
    Ids of the transports enabled in configuration, in configuration order.
    """
    section = config.get("transports", {}) or {}
    return [
        transport_id
        for transport_id, options in section.items()
        if isinstance(options, dict) and options.get("enabled", False)
    ]
