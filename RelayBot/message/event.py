"""
消息事件 - 定义入站消息与命令调用的结构
Message event - defines the inbound message and command invocation structures.

入站消息只存在于一次路由过程中，不做持久化。
An inbound message lives for one routing pass only and is never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class InboundMessage:
    """
    入站消息 - 传输层归一化后的频道消息
    Inbound message - a channel message as normalized by a transport.
    """

    # 传输层标识（如 irc, slack）
    transport_id: str
    # 发送者昵称
    sender: str
    # 频道名（如 #test）
    channel: str
    # 消息文本
    text: str

    def __str__(self) -> str:
        return f"[{self.transport_id}] <{self.sender}/{self.channel}> {self.text}"


@dataclass(frozen=True)
class CommandInvocation:
    """
    命令调用 - 插件识别出一条命令后发射的描述
    Command invocation - emitted once a plugin recognizes a command.
    """

    transport_id: str
    plugin: str
    command: str
    sender: str
    channel: str
    args: str | None = None
