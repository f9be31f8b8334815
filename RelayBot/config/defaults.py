"""
默认配置 - 框架的所有默认配置值
Default configuration - all default configuration values of the framework.
"""

from __future__ import annotations

from typing import Any


def build_default_config() -> dict[str, Any]:
    """
    构建默认配置
    Build the default configuration.
    """
    return {
        # 命令触发前缀
        "trigger": "!",
        # 传输层配置
        "transports": {
            "irc": {
                "enabled": True,
                "server": "127.0.0.1",
                "port": 6667,
                "nick": "relaybot",
                "username": "relaybot",
                "realname": "relaybot",
                "channels": ["#relaybot"],
                "use_ssl": False,
                "nickserv_password": "",
                "nickserv_nick": "NickServ",
                "connect_attempts": 5,
                "connect_attempt_delay": 2,
                # 空列表表示不限制频道
                "allowed_channels": [],
            },
            "slack": {
                "enabled": False,
                "bot_token": "",
                "app_token": "",
                "allowed_channels": [],
            },
        },
        # 插件配置
        "plugins": {
            "autoload": ["*"],
            "paths": [],
            "timeout": 30,
            "linklog": {
                "capture_links": True,
                "post_url": "",
            },
            "urban": {
                "api_url": "https://api.urbandictionary.com/v0/define",
            },
        },
        # 存储配置
        "store": {
            "db_path": "data/relaybot.db",
        },
        # 关闭流程
        "shutdown": {
            "farewell": "bye",
            "grace_period": 2,
        },
        # 日志配置
        "logging": {
            "level": "INFO",
            "file": "data/logs/relaybot.log",
        },
    }
