"""
路径工具 - 管理框架的文件路径
Path utility - manages framework file paths.

目录结构 / Layout:
    data/
    ├── config/relaybot_config.json
    ├── plugins/          ← 用户插件 / user plugins
    ├── logs/relaybot.log
    └── relaybot.db
"""

from __future__ import annotations

import os


def get_data_path() -> str:
    """获取数据目录路径 / Get data directory path."""
    return os.environ.get("RELAYBOT_DATA_PATH", "data")


def get_config_file() -> str:
    """获取主配置文件路径 / Get main config file path."""
    return os.environ.get(
        "RELAYBOT_CONFIG",
        os.path.join(get_data_path(), "config", "relaybot_config.json"),
    )


def get_plugins_path() -> str:
    """获取用户插件目录路径 / Get user plugins directory path."""
    return os.path.join(get_data_path(), "plugins")


def get_builtin_plugins_path() -> str:
    """获取内置插件目录路径 / Get built-in plugins directory path."""
    return os.path.join(
        os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
        "plugin",
        "builtin",
    )


def ensure_dir(path: str) -> str:
    """确保目录存在 / Ensure directory exists."""
    os.makedirs(path, exist_ok=True)
    return path
