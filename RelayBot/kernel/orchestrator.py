"""
编排器 - 持有传输层与插件，负责消息分发和单播/广播发送
Orchestrator - owns the transports and plugins, dispatches messages and
performs unicast/broadcast sends.

消息分发协议：
1. 发射 message.received 信号
2. 对插件注册表取快照（写时复制，按注册顺序）
3. 逐个调用插件的 handle，每次调用都在故障隔离中执行（异常/超时只记录日志）
4. 返回所有插件结果的逻辑或

匹配到的协程命令作为独立任务运行，分发循环不等待它们。

Dispatch protocol:
1. Emit ``message.received``.
2. Snapshot the plugin registry (copy-on-write, registration order).
3. Call each plugin's ``handle`` under fault isolation (errors and timeouts
   are logged, never propagated).
4. Return the logical OR of every plugin's result.

Matched coroutine commands run as separate tasks that the dispatch loop
does not await.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable
from typing import Any

from RelayBot.config.defaults import build_default_config
from RelayBot.config.manager import ConfigManager
from RelayBot.kernel.errors import CommandError, PluginLoadError
from RelayBot.kernel.signal_hub import SignalHub, SignalKind
from RelayBot.message.event import InboundMessage
from RelayBot.plugin.base import Plugin
from RelayBot.plugin.loader import PluginLoader, sanitize_name
from RelayBot.transport.base import Transport
from RelayBot.transport.registry import create_transport, enabled_transports

logger = logging.getLogger(__name__)


class Broadcast:
    """
    广播发送 - 向每个已注册的传输层发送同一条消息
    Broadcast sends - deliver the same message on every registered transport.
    """

    def __init__(self, bot: BotOrchestrator) -> None:
        self._bot = bot

    async def say(self, channel: str, msg: str) -> int:
        """广播普通消息，返回成功的传输层数量 / Returns delivered count."""
        return await self._fan_out(channel, msg, notice=False)

    async def notice(self, channel: str, msg: str) -> int:
        """广播通知消息，返回成功的传输层数量 / Returns delivered count."""
        return await self._fan_out(channel, msg, notice=True)

    async def _fan_out(self, channel: str, msg: str, notice: bool) -> int:
        delivered = 0
        send = self._bot.notice if notice else self._bot.say
        for transport_id in list(self._bot.transports):
            if await send(transport_id, channel, msg):
                delivered += 1
        return delivered


class BotOrchestrator:
    """
    机器人编排器 - 传输层注册表与插件注册表的唯一持有者
    Bot orchestrator - sole owner of the transport and plugin registries.

    注册表只通过本类的方法修改；分发时对注册表取快照，
    因此在分发过程中加载/卸载插件是安全的。
    Registries change only through this class's methods; dispatch works on
    a snapshot, so loading or unloading plugins mid-dispatch is safe.
    """

    def __init__(
        self,
        config: ConfigManager | None = None,
        hub: SignalHub | None = None,
        store: Any = None,
        loader: PluginLoader | None = None,
    ) -> None:
        if config is None:
            config = ConfigManager.from_dict({}, defaults=build_default_config())
        self._config = config
        self.hub = hub or SignalHub()
        # 存储协作者（可选），插件通过 bot.store 使用
        self.store = store
        self.loader = loader or PluginLoader()
        for path in self.get("plugins.paths", []) or []:
            self.loader.add_search_path(path)

        # 传输层注册表: id -> Transport
        self._transports: dict[str, Transport] = {}
        # 插件注册表: 净化后的名称 -> Plugin
        self._plugins: dict[str, Plugin] = {}
        # 保证两条消息的插件调用序列不会交错
        self._dispatch_lock = asyncio.Lock()
        # 同名插件的加载/卸载互斥
        self._lifecycle_locks: dict[str, asyncio.Lock] = {}
        # 在途的命令任务
        self._tasks: set[asyncio.Task[Any]] = set()

        self.broadcast = Broadcast(self)
        self.started_at = time.monotonic()

    # ---- 配置 ----

    @property
    def config(self) -> ConfigManager:
        return self._config

    def get(self, key: str, default: Any = None) -> Any:
        """读取配置（只读）/ Read configuration (read-only)."""
        return self._config.get(key, default)

    @property
    def uptime(self) -> float:
        """运行时长（秒）/ Seconds since the orchestrator was created."""
        return time.monotonic() - self.started_at

    def _plugin_timeout(self) -> float | None:
        timeout = self.get("plugins.timeout", 30)
        return float(timeout) if timeout else None

    # ---- 传输层 ----

    @property
    def transports(self) -> dict[str, Transport]:
        """传输层注册表的快照 / Snapshot of the transport registry."""
        return dict(self._transports)

    def get_transport(self, transport_id: str) -> Transport | None:
        return self._transports.get(transport_id)

    def users(self, transport_id: str, channel: str) -> list[str]:
        """
        频道成员快照（小写），传输层不存在时返回空列表
        Lower-cased roster of a channel; empty when the transport is absent.
        """
        transport = self._transports.get(transport_id)
        if transport is None:
            return []
        try:
            return [u.lower() for u in transport.users(channel)]
        except Exception:
            logger.exception("获取 %s 频道 %s 成员失败", transport_id, channel)
            return []

    async def add_transport(self, transport: Transport) -> bool:
        """
        注册一个传输层实例（每个 id 至多一个）
        Register a transport instance (at most one per id).
        """
        if transport.id in self._transports:
            logger.warning("传输层 %s 已注册，忽略", transport.id)
            return False

        transport.set_message_handler(self.handle)
        self._transports = {**self._transports, transport.id: transport}
        logger.info("已注册传输层: %s (%s v%s)", transport.id, transport.name, transport.version)
        await self.hub.emit_new(
            SignalKind.TRANSPORT_LOADED, payload=transport, source=transport.id
        )
        return True

    async def load_transports(self) -> int:
        """
        按配置中的启用开关创建传输层
        Create transports according to their enable flags.
        """
        count = 0
        for transport_id in enabled_transports(self._config):
            if transport_id in self._transports:
                continue
            try:
                transport = create_transport(transport_id, self._config)
            except Exception:
                logger.exception("创建传输层失败: %s", transport_id)
                continue
            if transport is not None and await self.add_transport(transport):
                count += 1
        return count

    async def connect_all(self) -> None:
        """
        并发连接所有传输层，单个失败不影响其他
        Connect every transport concurrently; one failure never blocks the others.
        """
        transports = list(self._transports.values())
        if not transports:
            logger.warning("没有已注册的传输层")
            return

        results = await asyncio.gather(
            *(t.connect() for t in transports), return_exceptions=True
        )
        for transport, result in zip(transports, results):
            if isinstance(result, BaseException):
                logger.error(
                    "传输层 %s 连接失败: %s",
                    transport.id,
                    result,
                    exc_info=result,
                )
                await self.hub.emit_new(
                    SignalKind.TRANSPORT_ERROR,
                    payload=transport,
                    source=transport.id,
                    error=result,
                )
            else:
                await self.hub.emit_new(
                    SignalKind.TRANSPORT_CONNECTED,
                    payload=transport,
                    source=transport.id,
                )

    async def disconnect_all(self, farewell: str | None = None) -> None:
        """
        并发断开所有传输层，容忍各自的失败
        Disconnect every transport concurrently, tolerating individual failures.
        """
        transports = list(self._transports.values())
        results = await asyncio.gather(
            *(t.disconnect(farewell) for t in transports), return_exceptions=True
        )
        for transport, result in zip(transports, results):
            if isinstance(result, BaseException):
                logger.error(
                    "传输层 %s 断开失败: %s",
                    transport.id,
                    result,
                    exc_info=result,
                )
                await self.hub.emit_new(
                    SignalKind.TRANSPORT_ERROR,
                    payload=transport,
                    source=transport.id,
                    error=result,
                )
            else:
                await self.hub.emit_new(
                    SignalKind.TRANSPORT_DISCONNECTED,
                    payload=transport,
                    source=transport.id,
                )

    async def shutdown(self, farewell: str | None = None) -> None:
        """
        关闭：等待在途命令、断开传输层、卸载插件、清空注册表
        Shut down: wait for in-flight commands, disconnect transports, unload
        plugins, clear registries.
        """
        await self.hub.emit_new(SignalKind.SYSTEM_SHUTDOWN, source="orchestrator")
        await self.drain(self._plugin_timeout())
        await self.disconnect_all(farewell)
        for name in list(self._plugins):
            await self.unload_plugin(name)
        self._transports = {}
        logger.info("编排器已关闭")

    # ---- 插件 ----

    @property
    def plugins(self) -> dict[str, Plugin]:
        """插件注册表的快照 / Snapshot of the plugin registry."""
        return dict(self._plugins)

    def has_plugin(self, name: str) -> bool:
        return sanitize_name(name) in self._plugins

    def get_plugin(self, name: str) -> Plugin | None:
        return self._plugins.get(sanitize_name(name))

    async def load_plugin(self, name: str) -> bool:
        """
        加载插件；导入、构造或 on_load 出错时注册表保持不变并返回 False
        Load a plugin; if import, construction or ``on_load`` fails the
        registry is left unchanged and False is returned.

        ``"*"`` 加载全部可发现的插件。
        ``"*"`` loads every discoverable plugin.
        """
        name = sanitize_name(name)
        if name == "*":
            return await self.load_all_plugins()
        if not name:
            return False
        async with self._lifecycle_lock(name):
            return await self._load_locked(name)

    def _lifecycle_lock(self, name: str) -> asyncio.Lock:
        return self._lifecycle_locks.setdefault(name, asyncio.Lock())

    async def _load_locked(self, name: str) -> bool:
        if name in self._plugins:
            logger.warning("插件 %s 已加载", name)
            return False

        try:
            plugin = self.loader.create(name, self)
            plugin.cache()
            await asyncio.wait_for(plugin.on_load(), timeout=self._plugin_timeout())
        except PluginLoadError as exc:
            logger.error("加载插件失败: %s", exc)
            self._discard_partial(name)
            return False
        except Exception:
            logger.exception("加载插件失败: %s", name)
            self._discard_partial(name)
            return False

        self._plugins = {**self._plugins, name: plugin}
        logger.info(
            "已加载插件: %s (%s v%s) 命令: %s",
            name,
            plugin.name,
            plugin.version,
            ", ".join(plugin.commands) or "-",
        )
        await self.hub.emit_new(SignalKind.PLUGIN_LOADED, payload=plugin, source=name)
        return True

    def _discard_partial(self, name: str) -> None:
        self.hub.disconnect_owner(name)
        self.loader.evict(name)

    async def load_all_plugins(self) -> bool:
        """
        加载全部可发现的插件，至少加载成功一个时返回 True
        Load every discoverable plugin; True if at least one loaded.
        """
        loaded = False
        for name in self.loader.discover():
            if name in self._plugins:
                continue
            loaded = await self.load_plugin(name) or loaded
        return loaded

    async def unload_plugin(self, name: str) -> bool:
        """
        卸载插件：发射信号、注销、断开其监听、运行 on_unload、驱逐模块
        Unload a plugin: emit, deregister, drop its listeners, run
        ``on_unload``, evict its module.
        """
        name = sanitize_name(name)
        async with self._lifecycle_lock(name):
            return await self._unload_locked(name)

    async def _unload_locked(self, name: str) -> bool:
        plugin = self._plugins.get(name)
        if plugin is None:
            return False

        await self.hub.emit_new(SignalKind.PLUGIN_UNLOADED, payload=plugin, source=name)
        self._plugins = {k: v for k, v in self._plugins.items() if k != name}
        self.hub.disconnect_owner(name)

        try:
            await asyncio.wait_for(plugin.on_unload(), timeout=self._plugin_timeout())
        except Exception:
            logger.exception("插件 %s (%s v%s) 卸载钩子出错", name, plugin.name, plugin.version)

        self.loader.evict(name)
        logger.info("已卸载插件: %s (%s v%s)", name, plugin.name, plugin.version)
        return True

    async def reload_plugin(self, name: str) -> bool:
        """
        重载插件；未加载时等同于 load_plugin，卸载失败时不再尝试加载
        Reload a plugin; equals ``load_plugin`` when not loaded, and no load
        is attempted if the unload fails.
        """
        name = sanitize_name(name)
        if name not in self._plugins:
            return await self.load_plugin(name)
        if not await self.unload_plugin(name):
            return False
        return await self.load_plugin(name)

    # ---- 消息分发 ----

    def channel_allowed(self, transport_id: str, channel: str) -> bool:
        """
        频道是否允许执行命令（空列表表示全部允许）
        Whether commands may run in a channel (an empty list allows all).
        """
        allowed = self.get(f"transports.{transport_id}.allowed_channels", []) or []
        if not allowed:
            return True
        return channel.lower() in {c.lower() for c in allowed}

    async def handle(
        self,
        transport_id: str,
        sender: str,
        channel: str,
        text: str,
    ) -> bool:
        """
        把一条入站消息分发给全部已加载的插件
        Dispatch one inbound message to every loaded plugin.
        """
        message = InboundMessage(
            transport_id=transport_id, sender=sender, channel=channel, text=text
        )

        async with self._dispatch_lock:
            await self.hub.emit_new(
                SignalKind.MESSAGE_RECEIVED, payload=message, source=transport_id
            )
            handled = False
            for plugin in list(self._plugins.values()):
                if await self._invoke_plugin(plugin, message):
                    handled = True

        if not handled:
            logger.debug("未处理的消息: %s", message)
        return handled

    async def _invoke_plugin(self, plugin: Plugin, message: InboundMessage) -> bool:
        """
        在故障隔离中调用一个插件
        Call one plugin under fault isolation.
        """
        try:
            result = await asyncio.wait_for(
                plugin.handle(
                    message.transport_id, message.sender, message.channel, message.text
                ),
                timeout=self._plugin_timeout(),
            )
            return bool(result)
        except Exception as exc:
            await self._plugin_fault(plugin, message, exc, "处理消息")
        return False

    async def _plugin_fault(
        self,
        plugin: Plugin,
        message: InboundMessage | None,
        error: Exception,
        stage: str,
    ) -> None:
        if isinstance(error, asyncio.TimeoutError):
            logger.error(
                "插件 %s (%s v%s) %s超时: %s",
                plugin.key,
                plugin.name,
                plugin.version,
                stage,
                message,
            )
        else:
            logger.error(
                "插件 %s (%s v%s) %s时出错: %s",
                plugin.key,
                plugin.name,
                plugin.version,
                stage,
                message,
                exc_info=error,
            )
        await self.hub.emit_new(
            SignalKind.PLUGIN_ERROR,
            payload=plugin,
            source=plugin.key,
            error=error,
            message=message,
        )

    def spawn(
        self,
        plugin: Plugin,
        coro: Awaitable[Any],
        message: InboundMessage | None = None,
    ) -> asyncio.Task[Any]:
        """
        把插件的协程作为独立任务运行，受插件超时约束并做故障隔离
        Run a plugin coroutine as a tracked task, bounded by the plugin
        timeout and isolated like a dispatch pass.

        分发循环不等待这些任务；``drain`` 等待它们结束。
        The dispatch loop does not await these tasks; ``drain`` does.
        """
        task = asyncio.ensure_future(self._run_isolated(plugin, coro, message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run_isolated(
        self,
        plugin: Plugin,
        coro: Awaitable[Any],
        message: InboundMessage | None,
    ) -> None:
        try:
            await asyncio.wait_for(coro, timeout=self._plugin_timeout())
        except Exception as exc:
            await self._plugin_fault(plugin, message, exc, "执行命令")

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    async def drain(self, timeout: float | None = None) -> None:
        """
        等待在途的命令任务结束；超时后取消剩余任务
        Wait for in-flight command tasks; cancel what is left after ``timeout``.
        """
        current = asyncio.current_task()
        while True:
            pending = {task for task in self._tasks if task is not current}
            if not pending:
                return
            _, pending = await asyncio.wait(pending, timeout=timeout)
            if pending:
                logger.warning("取消 %d 个未完成的命令任务", len(pending))
                for task in pending:
                    task.cancel()
                await asyncio.gather(*pending, return_exceptions=True)
                return

    # ---- 发送 ----

    async def say(self, transport_id: str, channel: str, msg: str) -> bool:
        """单播普通消息 / Unicast a normal message."""
        return await self._send(transport_id, channel, msg, notice=False)

    async def notice(self, transport_id: str, channel: str, msg: str) -> bool:
        """单播通知消息 / Unicast a notice."""
        return await self._send(transport_id, channel, msg, notice=True)

    async def _send(self, transport_id: str, channel: str, msg: str, notice: bool) -> bool:
        transport = self._transports.get(transport_id)
        if transport is None:
            logger.debug("传输层 %s 不存在，丢弃发往 %s 的消息", transport_id, channel)
            return False
        try:
            if notice:
                await transport.notice(channel, msg)
            else:
                await transport.say(channel, msg)
        except Exception:
            logger.exception("通过 %s 发送到 %s 失败", transport_id, channel)
            return False
        return True

    async def error(
        self,
        transport_id: str,
        channel: str,
        error: CommandError | BaseException | str,
    ) -> bool:
        """
        以 ``"Error: <message> (<code>)"`` 格式发送错误通知
        Send an error notice formatted as ``"Error: <message> (<code>)"``.
        """
        if isinstance(error, CommandError):
            message, code = error.message, error.code
        else:
            message, code = str(error), getattr(error, "code", 500)
        return await self.notice(transport_id, channel, f"Error: {message} ({code})")
