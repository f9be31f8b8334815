"""
IO 工具 - 网络操作
IO utility - network operations.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp

logger = logging.getLogger(__name__)


async def fetch_json(
    url: str,
    params: dict[str, Any] | None = None,
    timeout: int = 30,
) -> Any:
    """
    获取 JSON 数据，非 200 响应返回 None
    Fetch JSON data; a non-200 response yields None.
    """
    async with aiohttp.ClientSession() as session:
        async with session.get(
            url, params=params, timeout=aiohttp.ClientTimeout(total=timeout)
        ) as resp:
            if resp.status == 200:
                return await resp.json(content_type=None)
            logger.warning("请求失败: HTTP %d %s", resp.status, url)
            return None


async def post_json(url: str, payload: Any, timeout: int = 30) -> int | None:
    """
    以 JSON 形式 POST 数据，返回状态码；网络错误返回 None
    POST a JSON payload and return the status code; None on network errors.
    """
    try:
        async with aiohttp.ClientSession() as session:
            async with session.post(
                url, json=payload, timeout=aiohttp.ClientTimeout(total=timeout)
            ) as resp:
                logger.debug("POST %s -> %d", url, resp.status)
                return resp.status
    except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
        logger.warning("POST 出错: %s (%s)", url, exc)
        return None
