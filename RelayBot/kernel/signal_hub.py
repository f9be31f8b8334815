"""
信号中枢 - 编排器生命周期与消息处理事件的发布/订阅
Signal hub - publish/subscribe for orchestrator lifecycle and handling events.

编排器、插件和传输层把关键事件作为信号发出；插件通过 ``Plugin.listen``
订阅，订阅以插件名为所属者，插件卸载时一并移除。
The orchestrator, plugins and transports emit key events as signals.
Plugins subscribe through ``Plugin.listen``; each slot is owned by the
plugin's name and is removed when that plugin unloads.
"""

from __future__ import annotations

import inspect
import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class SignalPriority(Enum):
    """槽优先级，数值小者先执行 / Slot priority; lower values run first."""

    HIGHEST = 0
    HIGH = 25
    NORMAL = 50
    LOW = 75
    LOWEST = 100


class SignalKind(str, Enum):
    """RelayBot 发出的信号 / Signals emitted by RelayBot."""

    SYSTEM_READY = "system.ready"
    SYSTEM_SHUTDOWN = "system.shutdown"

    TRANSPORT_LOADED = "transport.loaded"
    TRANSPORT_CONNECTED = "transport.connected"
    TRANSPORT_DISCONNECTED = "transport.disconnected"
    TRANSPORT_ERROR = "transport.error"

    MESSAGE_RECEIVED = "message.received"
    COMMAND_HANDLED = "command.handled"

    PLUGIN_LOADED = "plugin.loaded"
    PLUGIN_UNLOADED = "plugin.unloaded"
    PLUGIN_ERROR = "plugin.error"


@dataclass
class Signal:
    """
    一次发射的信号
    One emitted signal.

    ``metadata`` 携带附加字段，例如 plugin.error 的 ``error`` 与 ``message``。
    ``metadata`` carries extra fields such as ``error`` and ``message`` on
    plugin.error.
    """

    kind: SignalKind | str
    payload: Any = None
    source: str = ""
    consumed: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)

    def consume(self) -> None:
        """停止向后续槽传播 / Stop propagation to later slots."""
        self.consumed = True


@dataclass
class Slot:
    id: str
    kind: str
    handler: Callable[[Signal], Any]
    priority: SignalPriority
    seq: int
    owner: str = ""
    once: bool = False
    accept: Callable[[Signal], bool] | None = None


def kind_name(kind: SignalKind | str) -> str:
    return kind.value if isinstance(kind, SignalKind) else str(kind)


class SignalHub:
    """
    信号中枢
    Signal hub.

    同一信号的槽按优先级执行，优先级相同时按连接顺序。处理器可以是普通
    函数或协程；处理器抛出的异常只记录日志，不会影响发射方或其他槽。
    Slots for one kind run by priority, then in connection order. Handlers
    may be plain functions or coroutines; a handler's exception is logged
    and never reaches the emitter or the other slots.
    """

    def __init__(self) -> None:
        self._slots: dict[str, Slot] = {}
        self._seq = itertools.count(1)

    def connect(
        self,
        signal_kind: SignalKind | str,
        handler: Callable[[Signal], Any],
        priority: SignalPriority = SignalPriority.NORMAL,
        filter_fn: Callable[[Signal], bool] | None = None,
        once: bool = False,
        owner: str = "",
    ) -> str:
        """
        订阅一种信号，返回槽 id
        Subscribe to a signal kind and return the slot id.
        """
        seq = next(self._seq)
        slot = Slot(
            id=f"slot_{seq}",
            kind=kind_name(signal_kind),
            handler=handler,
            priority=priority,
            seq=seq,
            owner=owner,
            once=once,
            accept=filter_fn,
        )
        self._slots[slot.id] = slot
        logger.debug("槽 %s 订阅 %s (owner=%s)", slot.id, slot.kind, owner or "-")
        return slot.id

    def disconnect(self, slot_id: str) -> bool:
        return self._slots.pop(slot_id, None) is not None

    def disconnect_owner(self, owner: str) -> int:
        """
        移除某个所属者的全部槽，返回移除数量
        Remove every slot held by ``owner``; returns how many were removed.
        """
        if not owner:
            return 0
        stale = [sid for sid, slot in self._slots.items() if slot.owner == owner]
        for sid in stale:
            del self._slots[sid]
        if stale:
            logger.debug("已移除 %s 的 %d 个槽", owner, len(stale))
        return len(stale)

    def _subscribers(self, kind: str) -> list[Slot]:
        slots = [slot for slot in self._slots.values() if slot.kind == kind]
        slots.sort(key=lambda slot: (slot.priority.value, slot.seq))
        return slots

    async def emit(self, signal: Signal) -> Signal:
        """
        把信号依次交给订阅它的槽
        Hand the signal to each subscribed slot in turn.
        """
        kind = kind_name(signal.kind)
        for slot in self._subscribers(kind):
            if signal.consumed:
                break
            if slot.id not in self._slots:
                # 被前面的处理器断开了
                continue
            if slot.accept is not None and not slot.accept(signal):
                continue
            if slot.once:
                self._slots.pop(slot.id, None)

            try:
                result = slot.handler(signal)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("信号处理器 %s 处理 %s 时出错", slot.id, kind)

        return signal

    async def emit_new(
        self,
        kind: SignalKind | str,
        payload: Any = None,
        source: str = "",
        **metadata: Any,
    ) -> Signal:
        return await self.emit(
            Signal(kind=kind, payload=payload, source=source, metadata=metadata)
        )

    def slot_count(
        self,
        signal_kind: SignalKind | str | None = None,
        owner: str | None = None,
    ) -> int:
        slots = self._slots.values()
        if signal_kind is not None:
            kind = kind_name(signal_kind)
            slots = [slot for slot in slots if slot.kind == kind]
        if owner is not None:
            slots = [slot for slot in slots if slot.owner == owner]
        return len(list(slots))

    def clear(self) -> None:
        self._slots.clear()
