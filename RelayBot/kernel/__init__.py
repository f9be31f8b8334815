"""
内核模块 - 框架的核心
Kernel module - the core of the framework.

包含编排器、信号中枢、错误类型、日志和启动引导。编排器与启动引导
需从各自子模块导入（它们依赖插件与传输层包）。
Contains the orchestrator, signal hub, error types, logging and bootstrap.
Import the orchestrator and bootstrap from their submodules (they depend
on the plugin and transport packages).
"""

from RelayBot.kernel.errors import (
    CommandError,
    PluginLoadError,
    RelayBotError,
    StoreError,
    TransportStateError,
)
from RelayBot.kernel.signal_hub import Signal, SignalHub, SignalKind, SignalPriority

__all__ = [
    "SignalHub",
    "Signal",
    "SignalKind",
    "SignalPriority",
    "RelayBotError",
    "PluginLoadError",
    "TransportStateError",
    "CommandError",
    "StoreError",
]
