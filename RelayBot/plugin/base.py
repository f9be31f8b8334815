"""
插件基类 - 所有插件的父类
Plugin base - parent of all plugins.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from RelayBot.kernel.errors import CommandError
from RelayBot.kernel.signal_hub import SignalKind, SignalPriority
from RelayBot.message.event import CommandInvocation, InboundMessage
from RelayBot.plugin.commands import (
    COMMAND_PREFIX,
    CommandDescriptor,
    collect_commands,
    match_command,
)

if TYPE_CHECKING:
    from RelayBot.kernel.orchestrator import BotOrchestrator

logger = logging.getLogger(__name__)


class Plugin:
    """
    插件基类 - 所有用户/内置插件继承此类
    Plugin base - all user/builtin plugins inherit from this.

    生命周期：
    1. __init__(bot, key) - 构造，此时建立命令表
    2. on_load() - 加载时调用，抛出异常则加载失败
    3. on_unload() - 卸载时调用

    命令以 ``cmd_<name>(transport_id, sender, channel, args)`` 成员声明，
    可以是普通函数或协程。
    Commands are declared as ``cmd_<name>(transport_id, sender, channel, args)``
    members, either plain functions or coroutines.
    """

    # 插件显示名称
    name: str = "Plugin"
    # 插件版本
    version: str = "0.1.0"

    def __init__(self, bot: BotOrchestrator, key: str = "") -> None:
        self.bot = bot
        # 注册表中的键（即净化后的插件名）
        self.key = key or type(self).__module__.rsplit(".", 1)[-1]
        # None 表示尚未收集；空元组表示没有命令
        self._commands: tuple[CommandDescriptor, ...] | None = None
        self.cache()

    @property
    def commands(self) -> tuple[str, ...]:
        """已缓存的命令名（声明顺序）/ Cached command names in declaration order."""
        return tuple(c.name for c in self._commands or ())

    @property
    def command_table(self) -> tuple[CommandDescriptor, ...]:
        return self._commands or ()

    def cache(self) -> Plugin:
        """
        重新收集插件声明的全部命令
        Recollect every command declared by the plugin.
        """
        self._commands = collect_commands(type(self))
        logger.debug(
            "[%s v%s] 支持的命令: %s",
            self.name,
            self.version,
            ", ".join(self.commands),
        )
        return self

    async def on_load(self) -> None:
        """
        加载时调用 - 可在此处进行初始化
        Called on load - perform initialization here.
        """
        pass

    async def on_unload(self) -> None:
        """
        卸载时调用 - 可在此处进行清理
        Called on unload - perform cleanup here.
        """
        pass

    def get(self, key: str, default: Any = None) -> Any:
        """读取共享配置 / Read the shared configuration."""
        return self.bot.get(key, default)

    def setting(self, key: str, default: Any = None) -> Any:
        """
        读取本插件的配置段（plugins.<key>）
        Read a key from this plugin's section (``plugins.<key>``).
        """
        return self.bot.get(f"plugins.{self.key}.{key}", default)

    def listen(
        self,
        signal_kind: SignalKind | str,
        handler: Callable[..., Any],
        priority: SignalPriority = SignalPriority.NORMAL,
        once: bool = False,
    ) -> str:
        """
        订阅信号，卸载插件时自动断开
        Subscribe to a signal; the slot is removed when the plugin unloads.
        """
        return self.bot.hub.connect(
            signal_kind, handler, priority=priority, once=once, owner=self.key
        )

    async def report_error(
        self,
        transport_id: str,
        channel: str,
        error: str | CommandError,
        code: int | str = 500,
    ) -> bool:
        """
        以 notice 形式报告面向用户的错误
        Report a user-facing error as a notice.
        """
        if not isinstance(error, CommandError):
            error = CommandError(error, code)
        return await self.bot.error(transport_id, channel, error)

    async def handle(
        self,
        transport_id: str,
        sender: str,
        channel: str,
        text: str,
    ) -> bool:
        """
        处理一条消息，匹配到命令时执行之
        Handle a message, executing a command when one matches.

        协程命令交给 ``bot.spawn`` 作为独立任务运行，本方法不等待它。
        A coroutine command is handed to ``bot.spawn`` as its own task and
        is not awaited here.

        子类可覆盖此方法做自由格式检测，再回落到 ``super().handle``。
        Subclasses may override this for free-form detection and then fall
        through to ``super().handle``.
        """
        if self._commands is None:
            self.cache()

        trigger = str(self.get("trigger", "!"))
        matched = match_command(text, trigger, self.commands)
        if matched is None:
            logger.debug(
                "[%s v%s] 未处理的消息: <%s/%s> %s",
                self.name,
                self.version,
                sender,
                channel,
                text,
            )
            return False

        command, args = matched
        if not self.bot.channel_allowed(transport_id, channel):
            logger.debug("[%s v%s] 频道 %s 不在允许列表中", self.name, self.version, channel)
            return False

        handler = getattr(self, COMMAND_PREFIX + command, None)
        if handler is None:
            return False

        logger.debug(
            "[%s v%s] 调用 %s%s(%s, %s, %s)",
            self.name,
            self.version,
            COMMAND_PREFIX,
            command,
            sender,
            channel,
            args,
        )
        await self.bot.hub.emit_new(
            SignalKind.COMMAND_HANDLED,
            payload=CommandInvocation(
                transport_id=transport_id,
                plugin=self.key,
                command=command,
                sender=sender,
                channel=channel,
                args=args,
            ),
            source=self.key,
        )

        try:
            result = handler(transport_id, sender, channel, args)
        except CommandError as exc:
            await self.report_error(transport_id, channel, exc)
            return True

        if inspect.isawaitable(result):
            # 协程命令在独立任务中运行，分发不等待它
            self.bot.spawn(
                self,
                self._run_command(result, transport_id, channel),
                InboundMessage(
                    transport_id=transport_id, sender=sender, channel=channel, text=text
                ),
            )
        return True

    async def _run_command(self, pending: Any, transport_id: str, channel: str) -> None:
        try:
            await pending
        except CommandError as exc:
            await self.report_error(transport_id, channel, exc)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}: {self.key} v{self.version}>"
