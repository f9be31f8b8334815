"""
传输层模块 - 聊天后端的统一抽象
Transport module - a uniform abstraction over chat backends.
"""

from RelayBot.transport.base import MessageHandler, Transport, TransportStatus
from RelayBot.transport.registry import (
    BUILTIN_TRANSPORTS,
    create_transport,
    enabled_transports,
)

__all__ = [
    "Transport",
    "TransportStatus",
    "MessageHandler",
    "BUILTIN_TRANSPORTS",
    "create_transport",
    "enabled_transports",
]
