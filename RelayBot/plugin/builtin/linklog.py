"""
链接记录插件 - 捕获消息中的 URL 并 POST 到链接日志服务
Link log plugin - captures URLs from messages and POSTs them to a link log.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any

from RelayBot.plugin.base import Plugin
from RelayBot.utils import io

logger = logging.getLogger(__name__)

URL_RE = re.compile(
    r"\b(?:https?|ftp|file)://[-A-Z0-9+&@#/%?=~_|!:,.;]*[-A-Z0-9+&@#/%=~_|]",
    re.IGNORECASE,
)


class LinkLogPlugin(Plugin):
    """链接记录 / Link log."""

    name = "Linklog Plugin"
    version = "0.1.0"

    async def handle(
        self, transport_id: str, sender: str, channel: str, text: str
    ) -> bool:
        if self.setting("capture_links", True):
            urls = URL_RE.findall(text)
            if urls:
                logger.debug("发现 %d 个链接", len(urls))
            for url in urls:
                link = {
                    "date": datetime.now(timezone.utc).isoformat(),
                    "nick": sender,
                    "source": channel.lower(),
                    "url": url,
                    "transport": transport_id,
                }
                # 链接日志的 POST 不阻塞分发
                self.bot.spawn(self, self.capture(link))

        # 处理插件命令
        return await super().handle(transport_id, sender, channel, text)

    async def capture(self, link: dict[str, Any]) -> bool:
        """
        发送一条链接到链接日志
        Send one link to the link log.
        """
        post_url = self.setting("post_url", "")
        if not post_url:
            logger.debug("未配置 post_url，跳过 %s", link["url"])
            return False
        status = await io.post_json(post_url, link)
        return status is not None and 200 <= status < 300
