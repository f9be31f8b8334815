"""
Slack 传输层适配器
Slack transport adapter.

通过 slack_sdk 的 Socket Mode 接收事件，通过 Web API 发送消息。
Receives events over slack_sdk Socket Mode, sends through the Web API.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from RelayBot.transport.base import Transport

logger = logging.getLogger(__name__)

MENTION_RE = re.compile(r"<@(\w+)>")


class SlackTransport(Transport):
    """Slack 传输层 / Slack transport."""

    id = "slack"
    name = "Slack Transport"
    version = "0.1"

    def __init__(self, config: Any = None) -> None:
        super().__init__(config)
        self._web: Any = None
        self._socket: Any = None
        self._self_id = ""
        # 频道名 -> 频道 id
        self._channel_ids: dict[str, str] = {}
        # 频道 id -> 频道名
        self._channel_names: dict[str, str] = {}
        # 用户 id -> 用户名
        self._user_names: dict[str, str] = {}
        # 频道 id -> 成员用户 id 列表
        self._members: dict[str, list[str]] = {}

    async def open(self) -> None:
        from slack_sdk.socket_mode.aiohttp import SocketModeClient
        from slack_sdk.web.async_client import AsyncWebClient

        bot_token = self.setting("bot_token", "")
        app_token = self.setting("app_token", "")
        if not bot_token or not app_token:
            raise ValueError("Slack bot_token / app_token not configured")

        self._web = AsyncWebClient(token=bot_token)
        auth = await self._web.auth_test()
        self._self_id = auth.get("user_id", "")
        logger.info("[Slack] 已登录为 @%s (%s)", auth.get("user", "unknown"), auth.get("team", ""))

        for channel_id in await self._refresh_channels():
            await self.refresh_members(channel_id)

        self._socket = SocketModeClient(app_token=app_token, web_client=self._web)
        self._socket.socket_mode_request_listeners.append(self._on_request)
        await self._socket.connect()

    async def close(self, farewell: str | None = None) -> None:
        if self._socket is not None:
            await self._socket.disconnect()
            await self._socket.close()
            self._socket = None

    async def _refresh_channels(self) -> list[str]:
        response = await self._web.conversations_list(
            types="public_channel,private_channel", exclude_archived=True
        )
        joined = []
        for chan in response.get("channels", []):
            name = "#" + chan["name"]
            self._channel_ids[name] = chan["id"]
            self._channel_names[chan["id"]] = name
            if chan.get("is_member"):
                joined.append(chan["id"])
        if joined:
            logger.debug(
                "[Slack] 已加入频道: %s",
                ", ".join(self._channel_names[c] for c in joined),
            )
        return joined

    async def _user_name(self, user_id: str) -> str | None:
        if user_id not in self._user_names:
            try:
                response = await self._web.users_info(user=user_id)
            except Exception:
                logger.warning("[Slack] 无法解析用户 %s", user_id)
                return None
            self._user_names[user_id] = response["user"]["name"]
        return self._user_names[user_id]

    async def _rewrite_mentions(self, text: str) -> str:
        for user_id in set(MENTION_RE.findall(text)):
            name = await self._user_name(user_id)
            if name:
                text = text.replace(f"<@{user_id}>", f"@{name}")
        return text

    async def _on_request(self, client: Any, req: Any) -> None:
        from slack_sdk.socket_mode.response import SocketModeResponse

        await client.send_socket_mode_response(
            SocketModeResponse(envelope_id=req.envelope_id)
        )
        if req.type != "events_api":
            return

        event = req.payload.get("event", {})
        await self._on_event(event)

    async def _on_event(self, event: dict[str, Any]) -> None:
        kind = event.get("type")
        if kind in ("member_joined_channel", "member_left_channel"):
            await self._on_membership(kind, event)
            return

        # 只转发用户在频道中发的普通消息
        if kind != "message" or event.get("subtype"):
            return
        user_id = event.get("user")
        if not user_id or user_id == self._self_id:
            return
        if event.get("channel_type") not in ("channel", "group"):
            return

        channel = self._channel_names.get(event.get("channel", ""))
        if channel is None:
            await self._refresh_channels()
            channel = self._channel_names.get(event.get("channel", ""))
            if channel is None:
                return

        sender = await self._user_name(user_id)
        if sender is None:
            return
        if event["channel"] not in self._members:
            await self.refresh_members(event["channel"])

        text = await self._rewrite_mentions(event.get("text", ""))
        logger.debug("[Slack] <%s/%s> %s", sender, channel, text)
        await self.submit(sender, channel, text)

    async def _on_membership(self, kind: str, event: dict[str, Any]) -> None:
        channel_id = event.get("channel", "")
        user_id = event.get("user", "")
        if not channel_id or not user_id:
            return
        if kind == "member_left_channel" and user_id == self._self_id:
            self._members.pop(channel_id, None)
            return
        if channel_id not in self._members:
            # 尚未缓存的频道：完整拉取一次即可
            await self.refresh_members(channel_id)
            return

        members = self._members[channel_id]
        if kind == "member_joined_channel":
            if user_id not in members:
                await self._user_name(user_id)
                members.append(user_id)
        elif user_id in members:
            members.remove(user_id)
        logger.debug("[Slack] %s %s %s", kind, user_id, channel_id)

    async def send_message(self, channel: str, text: str, notice: bool = False) -> None:
        if self._web is None:
            return
        name = channel if channel.startswith("#") else "#" + channel
        channel_id = self._channel_ids.get(name)
        if channel_id is None:
            logger.warning("[Slack] 未知频道: %s", channel)
            return
        await self._web.chat_postMessage(channel=channel_id, text=text)

    async def refresh_members(self, channel_id: str) -> None:
        """
        刷新频道成员缓存，users() 读取该缓存
        Refresh the member cache that ``users()`` reads.
        """
        try:
            response = await self._web.conversations_members(channel=channel_id)
        except Exception:
            logger.warning("[Slack] 获取频道成员失败: %s", channel_id)
            return
        members = list(response.get("members", []))
        for user_id in members:
            await self._user_name(user_id)
        self._members[channel_id] = members

    def users(self, channel: str) -> list[str]:
        name = channel if channel.startswith("#") else "#" + channel
        channel_id = self._channel_ids.get(name)
        if channel_id is None:
            return []
        return [
            self._user_names[uid].lower()
            for uid in self._members.get(channel_id, [])
            if uid in self._user_names
        ]
