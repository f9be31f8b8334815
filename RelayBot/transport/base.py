"""
传输层基类 - 所有聊天后端适配器的抽象基类
Transport base - abstract base class for all chat backend adapters.

每个具体后端（如 IRC、Slack）需要实现 open/close/send_message/users。
Each concrete backend (e.g. IRC, Slack) implements open/close/send_message/users.

设计要求：
1. 传输层负责连接后端，并把频道消息归一化为 (transport_id, sender, channel, text)
2. 归一化后的消息通过编排器安装的消息处理器提交
3. say/notice 在 connect 之后随时可调用：就绪前排队，就绪后发送
4. 状态机：IDLE → CONNECTING → READY ⇄ ERROR，DISCONNECTED 为终态
"""

from __future__ import annotations

import inspect
import logging
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Awaitable, Callable
from enum import Enum, auto
from typing import TYPE_CHECKING, Any

from RelayBot.kernel.errors import TransportStateError

if TYPE_CHECKING:
    from RelayBot.config.manager import ConfigManager

logger = logging.getLogger(__name__)

# (transport_id, sender, channel, text) -> handled
MessageHandler = Callable[[str, str, str, str], Awaitable[Any]]


class TransportStatus(Enum):
    """传输层状态枚举 / Transport status enum."""

    IDLE = auto()
    CONNECTING = auto()
    READY = auto()
    ERROR = auto()
    DISCONNECTED = auto()


# 合法的状态转换
_TRANSITIONS: dict[TransportStatus, frozenset[TransportStatus]] = {
    TransportStatus.IDLE: frozenset({TransportStatus.CONNECTING}),
    TransportStatus.CONNECTING: frozenset(
        {TransportStatus.READY, TransportStatus.ERROR, TransportStatus.DISCONNECTED}
    ),
    TransportStatus.READY: frozenset(
        {TransportStatus.ERROR, TransportStatus.DISCONNECTED}
    ),
    TransportStatus.ERROR: frozenset(
        {
            TransportStatus.CONNECTING,
            TransportStatus.READY,
            TransportStatus.DISCONNECTED,
        }
    ),
    TransportStatus.DISCONNECTED: frozenset(),
}


async def _invoke_callback(callback: Callable[[], Any] | None) -> None:
    if callback is None:
        return
    result = callback()
    if inspect.isawaitable(result):
        await result


class Transport(ABC):
    """
    传输层抽象基类 - 所有后端适配器的父类
    Transport abstract base - parent of all backend adapters.
    """

    # 稳定的短标识
    id: str = "unknown"
    # 显示名称
    name: str = "Transport"
    # 版本
    version: str = "0.1"

    def __init__(self, config: ConfigManager | None = None) -> None:
        if config is None:
            from RelayBot.config.manager import ConfigManager

            config = ConfigManager.from_dict({})
        self._config = config
        self._status = TransportStatus.IDLE
        self._on_message: MessageHandler | None = None
        self._outbox: deque[tuple[str, str, bool]] = deque(
            maxlen=int(self.setting("outbox_size", 100))
        )

    def get(self, key: str, default: Any = None) -> Any:
        """读取全局配置（委托给编排器的配置）/ Read the shared configuration."""
        return self._config.get(key, default)

    def setting(self, key: str, default: Any = None) -> Any:
        """读取本传输层的配置段 / Read a key from this transport's section."""
        return self._config.get(f"transports.{self.id}.{key}", default)

    @property
    def status(self) -> TransportStatus:
        """获取当前状态 / Get current status."""
        return self._status

    @property
    def is_ready(self) -> bool:
        return self._status is TransportStatus.READY

    def _set_status(self, status: TransportStatus) -> None:
        """
        执行一次状态转换
        Perform a state transition.
        """
        if status is self._status:
            return
        if status not in _TRANSITIONS[self._status]:
            raise TransportStateError(
                f"{self.id}: illegal transition {self._status.name} -> {status.name}"
            )
        logger.debug("[%s] 状态 %s -> %s", self.id, self._status.name, status.name)
        self._status = status

    def set_message_handler(self, handler: MessageHandler | None) -> None:
        """
        设置消息接收回调
        Set the message receive callback.
        """
        self._on_message = handler

    async def submit(self, sender: str, channel: str, text: str) -> bool:
        """
        提交一条归一化后的频道消息
        Submit a normalized channel message.
        """
        if self._on_message is None:
            logger.warning("传输层 %s 未设置消息处理器", self.id)
            return False
        return bool(await self._on_message(self.id, sender, channel, text))

    async def connect(self, on_ready: Callable[[], Any] | None = None) -> Transport:
        """
        连接后端，完全可用后调用一次 on_ready
        Connect to the backend and call ``on_ready`` once fully usable.
        """
        if self._status is TransportStatus.READY:
            await _invoke_callback(on_ready)
            return self

        self._set_status(TransportStatus.CONNECTING)
        try:
            await self.open()
        except Exception:
            if self._status is TransportStatus.CONNECTING:
                self._set_status(TransportStatus.ERROR)
            raise

        # open() 期间可能已被 disconnect
        if self._status is TransportStatus.DISCONNECTED:
            return self

        self._set_status(TransportStatus.READY)
        logger.info("传输层已就绪: %s (%s v%s)", self.id, self.name, self.version)
        await self._flush_outbox()
        await _invoke_callback(on_ready)
        return self

    async def disconnect(
        self,
        farewell: str | None = None,
        on_done: Callable[[], Any] | None = None,
    ) -> Transport:
        """
        断开连接，可选发送告别语，完成后调用一次 on_done
        Disconnect, optionally announcing ``farewell``; ``on_done`` fires once.
        """
        try:
            if self._status in (TransportStatus.IDLE, TransportStatus.DISCONNECTED):
                return self
            try:
                await self.close(farewell)
            finally:
                self._set_status(TransportStatus.DISCONNECTED)
                self._outbox.clear()
                logger.info("传输层已断开: %s", self.id)
        finally:
            await _invoke_callback(on_done)
        return self

    async def say(self, channel: str, msg: str) -> None:
        """发送普通消息 / Send a normal message."""
        await self._deliver(channel, msg, notice=False)

    async def notice(self, channel: str, msg: str) -> None:
        """发送通知消息 / Send a notice."""
        await self._deliver(channel, msg, notice=True)

    async def _deliver(self, channel: str, msg: str, notice: bool) -> None:
        if self._status is TransportStatus.READY:
            await self.send_message(channel, msg, notice=notice)
        elif self._status is TransportStatus.DISCONNECTED:
            logger.debug("[%s] 已断开，丢弃发往 %s 的消息", self.id, channel)
        else:
            # 就绪前排队，就绪后统一发送
            self._outbox.append((channel, msg, notice))

    async def _flush_outbox(self) -> None:
        while self._outbox and self._status is TransportStatus.READY:
            channel, msg, notice = self._outbox.popleft()
            try:
                await self.send_message(channel, msg, notice=notice)
            except Exception:
                logger.exception("[%s] 发送排队消息失败: %s", self.id, channel)

    @property
    def pending(self) -> int:
        """排队中的消息数 / Number of queued outbound messages."""
        return len(self._outbox)

    @abstractmethod
    async def open(self) -> None:
        """
        建立后端连接（包括任何二次认证）
        Establish the backend connection, including secondary authentication.

        返回时连接必须完全可用。
        Must return only once the connection is fully usable.
        """
        ...

    @abstractmethod
    async def close(self, farewell: str | None = None) -> None:
        """
        拆除后端连接
        Tear down the backend connection.
        """
        ...

    @abstractmethod
    async def send_message(self, channel: str, text: str, notice: bool = False) -> None:
        """
        发送消息到指定频道
        Send a message to a channel.
        """
        ...

    @abstractmethod
    def users(self, channel: str) -> list[str]:
        """
        频道成员快照（小写）；未知频道返回空列表
        Lower-cased roster snapshot; an empty list for unknown channels.
        """
        ...

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}: {self.id} {self._status.name}>"
