"""
消息模块 - 入站消息与命令调用的数据结构
Message module - inbound message and command invocation data structures.
"""

from RelayBot.message.event import CommandInvocation, InboundMessage

__all__ = ["InboundMessage", "CommandInvocation"]
