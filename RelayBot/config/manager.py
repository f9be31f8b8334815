"""
配置 - JSON 配置文件叠加在内置默认值之上
Configuration - a JSON file layered over the built-in defaults.

键用点号访问（如 transports.irc.port）。加载完成后配置只读，
插件与传输层通过 ``get`` 委托共享同一份配置。
Keys are read with dotted paths such as ``transports.irc.port``.
Configuration is read-only once loaded; plugins and transports share it
through a delegating ``get``.
"""

from __future__ import annotations

import copy
import json
import logging
import os
from typing import Any

from RelayBot.utils.paths import get_config_file

logger = logging.getLogger(__name__)


class ConfigManager:
    """
    配置管理器
    Config manager.

    缺失的键或值为 null 的键返回调用方给出的默认值，从不抛出异常。
    A missing key, or one whose value is null, yields the caller's default;
    lookups never raise.
    """

    def __init__(
        self,
        defaults: dict[str, Any] | None = None,
        config_path: str | None = None,
    ) -> None:
        self._defaults = defaults or {}
        self._config: dict[str, Any] = copy.deepcopy(self._defaults)
        self._config_path = config_path or get_config_file()

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        defaults: dict[str, Any] | None = None,
    ) -> ConfigManager:
        """
        由内存字典构建配置（不读文件）
        Build a configuration from an in-memory dict (no file access).
        """
        manager = cls(defaults=defaults)
        manager._config = copy.deepcopy(data)
        manager._merge_defaults(manager._config, manager._defaults)
        return manager

    @property
    def path(self) -> str:
        return self._config_path

    def load(self) -> None:
        """
        读取配置文件；文件缺失或损坏时只使用默认值
        Read the config file; a missing or broken file leaves only defaults.
        """
        if os.path.exists(self._config_path):
            try:
                with open(self._config_path, encoding="utf-8") as f:
                    self._config = json.load(f)
                logger.info("配置已从 %s 加载", self._config_path)
            except (json.JSONDecodeError, OSError):
                logger.warning("加载配置失败，使用默认值: %s", self._config_path)
                self._config = {}
        else:
            self._config = {}
            logger.info("未找到配置文件 %s，使用默认配置", self._config_path)

        self._merge_defaults(self._config, self._defaults)

    def get(self, key: str, default: Any = None) -> Any:
        """
        获取配置值（支持嵌套键，如 "transports.irc.port"）
        Get config value (supports nested keys like "transports.irc.port").
        """
        current: Any = self._config
        for k in key.split("."):
            if not isinstance(current, dict):
                return default
            current = current.get(k)
            if current is None:
                return default
        return current

    def section(self, key: str) -> dict[str, Any]:
        """获取一个配置段的副本 / Get a copy of a configuration section."""
        value = self.get(key, {})
        return copy.deepcopy(value) if isinstance(value, dict) else {}

    def as_dict(self) -> dict[str, Any]:
        """获取完整配置字典的副本 / Get a copy of the full config dictionary."""
        return copy.deepcopy(self._config)

    def _merge_defaults(self, config: dict[str, Any], defaults: dict[str, Any]) -> None:
        """
        把默认值补进缺失的键，已有值不动
        Fill missing keys from defaults, leaving present values untouched.
        """
        for key, default_value in defaults.items():
            if key not in config:
                config[key] = copy.deepcopy(default_value)
            elif isinstance(default_value, dict) and isinstance(config[key], dict):
                self._merge_defaults(config[key], default_value)
