"""
存储层模块 - 数据持久化
Store module - data persistence.

使用 SQLAlchemy + aiosqlite 提供异步数据库访问。
Uses SQLAlchemy + aiosqlite for async database access.
"""

from RelayBot.store.collections import CollectionStore
from RelayBot.store.engine import StorageEngine

__all__ = ["StorageEngine", "CollectionStore"]
