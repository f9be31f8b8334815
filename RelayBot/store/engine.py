"""
存储引擎 - 管理数据库连接
Storage engine - manages the database connection.
"""

from __future__ import annotations

import logging
import os

from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncEngine,
    create_async_engine,
)

logger = logging.getLogger(__name__)


class StorageEngine:
    """
    存储引擎 - 封装 SQLite 异步引擎
    Storage engine - wraps the async SQLite engine.
    """

    def __init__(self, db_path: str = "data/relaybot.db") -> None:
        self._db_path = db_path
        # 确保目录存在
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)

        self._engine: AsyncEngine = create_async_engine(
            f"sqlite+aiosqlite:///{db_path}",
            echo=False,
        )
        logger.info("数据库引擎已创建: %s", self._db_path)

    @property
    def db_path(self) -> str:
        return self._db_path

    def begin(self):
        """
        开启一个事务连接（async with 使用）
        Open a transactional connection, for ``async with``.
        """
        return self._engine.begin()

    def connect(self) -> AsyncConnection:
        return self._engine.connect()

    async def dispose(self) -> None:
        """关闭引擎 / Dispose engine."""
        await self._engine.dispose()
        logger.debug("数据库引擎已关闭: %s", self._db_path)
