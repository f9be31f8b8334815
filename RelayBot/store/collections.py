"""
集合存储 - 供插件使用的简易表存储
Collection store - simple table storage for plugins.

插件用字段描述声明一个集合（即一张表），之后按字典读写行。
A plugin declares a collection (a table) from field specs, then reads and
writes rows as dicts.

字段描述 / Field spec::

    {
        "id": {"type": "INTEGER", "primary": True, "autoincrement": True},
        "nick": {"type": "TEXT", "notnull": True},
        "value": {"type": "INTEGER", "notnull": True, "default": 0},
    }
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    LargeBinary,
    MetaData,
    Table,
    Text,
    and_,
    delete,
    func,
    insert,
    select,
    update,
)

from RelayBot.kernel.errors import StoreError
from RelayBot.store.engine import StorageEngine

logger = logging.getLogger(__name__)

# 字段类型名 -> SQLAlchemy 类型
FIELD_TYPES: dict[str, Any] = {
    "INTEGER": Integer,
    "TEXT": Text,
    "REAL": Float,
    "BLOB": LargeBinary,
    "BOOLEAN": Boolean,
    "DATETIME": DateTime,
}


def build_column(name: str, spec: dict[str, Any]) -> Column:
    """
    由字段描述构建列
    Build a column from a field spec.
    """
    type_name = str(spec.get("type", "TEXT")).upper()
    if type_name not in FIELD_TYPES:
        raise StoreError(f"unknown field type '{type_name}' for '{name}'")

    kwargs: dict[str, Any] = {
        "primary_key": bool(spec.get("primary", False)),
        "unique": bool(spec.get("unique", False)),
        "nullable": not spec.get("notnull", False),
    }
    if spec.get("autoincrement"):
        kwargs["autoincrement"] = True
    if "default" in spec:
        kwargs["default"] = spec["default"]
    return Column(name, FIELD_TYPES[type_name], **kwargs)


class CollectionStore:
    """
    集合存储 - 基于 SQLAlchemy Core 的动态表
    Collection store - dynamic tables on SQLAlchemy Core.
    """

    def __init__(self, engine: StorageEngine) -> None:
        self._engine = engine
        self._metadata = MetaData()
        self._tables: dict[str, Table] = {}

    @property
    def engine(self) -> StorageEngine:
        return self._engine

    def has_collection(self, name: str) -> bool:
        return name in self._tables

    async def create_collection(self, name: str, fields: dict[str, dict[str, Any]]) -> Table:
        """
        创建集合（表已存在时直接复用）
        Create a collection; an existing table is reused.
        """
        table = self._tables.get(name)
        if table is not None:
            return table

        columns = [build_column(field, spec) for field, spec in fields.items()]
        table = Table(name, self._metadata, *columns)
        async with self._engine.begin() as conn:
            await conn.run_sync(table.create, checkfirst=True)

        self._tables[name] = table
        logger.debug("集合已就绪: %s (%s)", name, ", ".join(fields))
        return table

    def _table(self, name: str) -> Table:
        table = self._tables.get(name)
        if table is None:
            raise StoreError(f"collection '{name}' has not been created")
        return table

    def _where(self, table: Table, where: dict[str, Any] | None) -> Any:
        if not where:
            return None
        try:
            return and_(*(table.c[key] == value for key, value in where.items()))
        except KeyError as exc:
            raise StoreError(f"unknown field {exc} in collection '{table.name}'") from exc

    def _primary(self, table: Table) -> Column:
        keys = list(table.primary_key.columns)
        if len(keys) != 1:
            raise StoreError(f"collection '{table.name}' has no single primary key")
        return keys[0]

    async def put(self, name: str, values: dict[str, Any]) -> Any:
        """
        插入一行，返回主键
        Insert a row and return its primary key.
        """
        table = self._table(name)
        async with self._engine.begin() as conn:
            result = await conn.execute(insert(table).values(**values))
        key = result.inserted_primary_key
        return key[0] if key else None

    async def put_all(self, name: str, rows: list[dict[str, Any]]) -> int:
        """批量插入 / Insert many rows."""
        if not rows:
            return 0
        table = self._table(name)
        async with self._engine.begin() as conn:
            await conn.execute(insert(table), rows)
        return len(rows)

    async def update(
        self,
        name: str,
        where: dict[str, Any] | None,
        values: dict[str, Any],
    ) -> int:
        """
        更新匹配的行，返回受影响行数
        Update matching rows; returns the affected row count.
        """
        table = self._table(name)
        stmt = update(table).values(**values)
        clause = self._where(table, where)
        if clause is not None:
            stmt = stmt.where(clause)
        async with self._engine.begin() as conn:
            result = await conn.execute(stmt)
        return result.rowcount

    async def update_by_id(self, name: str, row_id: Any, values: dict[str, Any]) -> bool:
        table = self._table(name)
        stmt = update(table).where(self._primary(table) == row_id).values(**values)
        async with self._engine.begin() as conn:
            result = await conn.execute(stmt)
        return result.rowcount > 0

    async def remove(self, name: str, where: dict[str, Any] | None = None) -> int:
        """
        删除匹配的行（where 为空时清空集合）
        Delete matching rows; an empty ``where`` clears the collection.
        """
        table = self._table(name)
        stmt = delete(table)
        clause = self._where(table, where)
        if clause is not None:
            stmt = stmt.where(clause)
        async with self._engine.begin() as conn:
            result = await conn.execute(stmt)
        return result.rowcount

    async def fetch(
        self,
        name: str,
        where: dict[str, Any] | None = None,
        columns: list[str] | None = None,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """
        查询行，order_by 以 "-" 开头表示降序
        Query rows; an ``order_by`` starting with "-" sorts descending.
        """
        table = self._table(name)
        try:
            selected = [table.c[c] for c in columns] if columns else [table]
        except KeyError as exc:
            raise StoreError(f"unknown field {exc} in collection '{name}'") from exc

        stmt = select(*selected)
        clause = self._where(table, where)
        if clause is not None:
            stmt = stmt.where(clause)
        if order_by:
            column = table.c[order_by.lstrip("-")]
            stmt = stmt.order_by(column.desc() if order_by.startswith("-") else column)
        if limit is not None:
            stmt = stmt.limit(limit)

        async with self._engine.connect() as conn:
            result = await conn.execute(stmt)
            return [dict(row._mapping) for row in result]

    async def fetch_one(
        self,
        name: str,
        where: dict[str, Any] | None = None,
        columns: list[str] | None = None,
    ) -> dict[str, Any] | None:
        rows = await self.fetch(name, where=where, columns=columns, limit=1)
        return rows[0] if rows else None

    async def fetch_by_id(self, name: str, row_id: Any) -> dict[str, Any] | None:
        table = self._table(name)
        return await self.fetch_one(name, where={self._primary(table).name: row_id})

    async def count(self, name: str, where: dict[str, Any] | None = None) -> int:
        table = self._table(name)
        stmt = select(func.count()).select_from(table)
        clause = self._where(table, where)
        if clause is not None:
            stmt = stmt.where(clause)
        async with self._engine.connect() as conn:
            result = await conn.execute(stmt)
            return int(result.scalar_one())

    async def close(self) -> None:
        """关闭底层引擎 / Dispose the underlying engine."""
        self._tables.clear()
        await self._engine.dispose()
