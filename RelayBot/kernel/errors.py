"""
错误类型 - 框架中使用的异常层次
Error types - the exception hierarchy used across the framework.
"""

from __future__ import annotations


class RelayBotError(Exception):
    """所有框架异常的基类 / Base class for every framework error."""


class PluginLoadError(RelayBotError):
    """插件无法导入或实例化 / A plugin could not be imported or constructed."""


class TransportStateError(RelayBotError):
    """传输层状态机收到非法转换 / Illegal transport state transition."""


class CommandError(RelayBotError):
    """
    面向用户的命令错误
    User-facing command error.

    携带一条可读消息和一个数字错误码，最终渲染为
    ``"Error: <message> (<code>)"`` 并以 notice 形式发回频道。
    Carries a human message and a numeric code, rendered as
    ``"Error: <message> (<code>)"`` and sent back to the channel as a notice.
    """

    def __init__(self, message: str, code: int | str = 500) -> None:
        super().__init__(message)
        self.message = message
        self.code = code

    def __str__(self) -> str:
        return f"{self.message} ({self.code})"


class StoreError(RelayBotError):
    """存储操作失败（如集合未创建）/ A storage operation failed."""
