"""
IRC 传输层适配器 - 基于 irc 库的 asyncio 反应器
IRC transport adapter - built on the ``irc`` library's asyncio reactor.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from RelayBot.transport.base import Transport, TransportStatus

logger = logging.getLogger(__name__)

# 昵称前的频道模式前缀
NICK_PREFIXES = "@+%~&"


def strip_nick(nick: str) -> str:
    """去掉模式前缀并转为小写 / Strip mode prefixes and lower-case a nick."""
    return nick.strip().lstrip(NICK_PREFIXES).lower()


class IRCTransport(Transport):
    """
    IRC 传输层 - 连接一个 IRC 网络并加入配置的频道
    IRC transport - connects to one IRC network and joins configured channels.
    """

    id = "irc"
    name = "IRC Transport"
    version = "0.1"

    def __init__(self, config: Any = None) -> None:
        super().__init__(config)
        self._reactor: Any = None
        self._connection: Any = None
        self._welcomed: asyncio.Event | None = None
        self._closing = False
        # 频道(小写) -> 成员昵称集合(小写)
        self._rosters: dict[str, set[str]] = {}
        self._tasks: set[asyncio.Task[Any]] = set()

    async def open(self) -> None:
        attempts = max(1, int(self.setting("connect_attempts", 5)))
        delay = float(self.setting("connect_attempt_delay", 2))

        for attempt in range(1, attempts + 1):
            try:
                await self._open_once()
                return
            except (OSError, asyncio.TimeoutError) as exc:
                logger.warning(
                    "IRC 连接失败 (%d/%d): %s", attempt, attempts, exc
                )
                if attempt == attempts:
                    raise
                await asyncio.sleep(delay)

    async def _open_once(self) -> None:
        import irc.client_aio
        import irc.connection

        server = self.setting("server", "127.0.0.1")
        port = int(self.setting("port", 6667))
        nick = self.setting("nick", "relaybot")

        self._reactor = irc.client_aio.AioReactor(loop=asyncio.get_running_loop())
        self._connection = self._reactor.server()
        self._welcomed = asyncio.Event()

        for event_type, handler in (
            ("welcome", self._on_welcome),
            ("pubmsg", self._on_pubmsg),
            ("namreply", self._on_namreply),
            ("join", self._on_join),
            ("part", self._on_part),
            ("kick", self._on_kick),
            ("quit", self._on_quit),
            ("nick", self._on_nick),
            ("disconnect", self._on_disconnect),
        ):
            self._connection.add_global_handler(event_type, handler)

        logger.info("正在连接 IRC: %s:%s (%s)", server, port, nick)
        await self._connection.connect(
            server,
            port,
            nick,
            username=self.setting("username", nick),
            ircname=self.setting("realname", nick),
            connect_factory=irc.connection.AioFactory(
                ssl=bool(self.setting("use_ssl", False))
            ),
        )
        await asyncio.wait_for(
            self._welcomed.wait(), timeout=float(self.setting("register_timeout", 60))
        )

    async def close(self, farewell: str | None = None) -> None:
        self._closing = True
        if self._connection is not None and self._connection.is_connected():
            self._connection.disconnect(farewell or "")
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._rosters.clear()

    async def send_message(self, channel: str, text: str, notice: bool = False) -> None:
        if self._connection is None:
            return
        for line in text.splitlines() or [""]:
            if notice:
                self._connection.notice(channel, line)
            else:
                self._connection.privmsg(channel, line)

    def users(self, channel: str) -> list[str]:
        return sorted(self._rosters.get(channel.lower(), ()))

    def _spawn(self, coro: Any) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # ---- irc 事件处理 ----

    def _on_welcome(self, connection: Any, event: Any) -> None:
        logger.info("已登录 IRC，昵称 %s", connection.get_nickname())

        password = self.setting("nickserv_password")
        if password:
            nickserv = self.setting("nickserv_nick", "NickServ")
            logger.debug("正在向 %s 认证", nickserv)
            connection.privmsg(nickserv, f"identify {password}")

        for channel in self.setting("channels", []):
            connection.join(channel)

        if self._welcomed is not None:
            self._welcomed.set()

    def _on_pubmsg(self, connection: Any, event: Any) -> None:
        sender = event.source.nick
        channel = event.target
        text = event.arguments[0] if event.arguments else ""
        self._spawn(self.submit(sender, channel, text))

    def _on_namreply(self, connection: Any, event: Any) -> None:
        # arguments: [频道类型, 频道, "nick1 @nick2 +nick3"]
        channel = event.arguments[1].lower()
        roster = self._rosters.setdefault(channel, set())
        roster.update(strip_nick(n) for n in event.arguments[2].split() if n)

    def _on_join(self, connection: Any, event: Any) -> None:
        self._rosters.setdefault(event.target.lower(), set()).add(
            strip_nick(event.source.nick)
        )

    def _on_part(self, connection: Any, event: Any) -> None:
        channel = event.target.lower()
        nick = strip_nick(event.source.nick)
        if nick == strip_nick(connection.get_nickname()):
            self._rosters.pop(channel, None)
        else:
            self._rosters.get(channel, set()).discard(nick)

    def _on_kick(self, connection: Any, event: Any) -> None:
        channel = event.target.lower()
        nick = strip_nick(event.arguments[0])
        if nick == strip_nick(connection.get_nickname()):
            self._rosters.pop(channel, None)
        else:
            self._rosters.get(channel, set()).discard(nick)

    def _on_quit(self, connection: Any, event: Any) -> None:
        nick = strip_nick(event.source.nick)
        for roster in self._rosters.values():
            roster.discard(nick)

    def _on_nick(self, connection: Any, event: Any) -> None:
        old = strip_nick(event.source.nick)
        new = strip_nick(event.target)
        for roster in self._rosters.values():
            if old in roster:
                roster.discard(old)
                roster.add(new)

    def _on_disconnect(self, connection: Any, event: Any) -> None:
        self._rosters.clear()
        if self._closing or self.status is not TransportStatus.READY:
            return
        logger.warning("IRC 连接意外断开，准备重连")
        self._set_status(TransportStatus.ERROR)
        self._spawn(self._reconnect())

    async def _reconnect(self) -> None:
        try:
            self._set_status(TransportStatus.CONNECTING)
            await self.open()
        except Exception:
            logger.exception("IRC 重连失败")
            if self.status is TransportStatus.CONNECTING:
                self._set_status(TransportStatus.ERROR)
            return
        if self.status is TransportStatus.CONNECTING:
            self._set_status(TransportStatus.READY)
            logger.info("IRC 已重新连接")
            await self._flush_outbox()
