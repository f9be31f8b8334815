"""
Collection store behaviour against a temporary SQLite database.
"""

from __future__ import annotations

import pytest

from RelayBot.kernel.errors import StoreError
from RelayBot.store.collections import CollectionStore, build_column
from RelayBot.store.engine import StorageEngine

QUOTES = {
    "id": {"type": "INTEGER", "primary": True, "autoincrement": True},
    "author": {"type": "TEXT", "notnull": True},
    "text": {"type": "TEXT", "notnull": True},
    "score": {"type": "INTEGER", "notnull": True, "default": 0},
}


def test_build_column_rejects_unknown_types() -> None:
    column = build_column("nick", {"type": "text", "unique": True, "notnull": True})
    assert column.unique is True
    assert column.nullable is False

    with pytest.raises(StoreError):
        build_column("bad", {"type": "VARCHAR2"})


@pytest.mark.asyncio
async def test_create_collection_is_idempotent(store) -> None:
    first = await store.create_collection("quotes", QUOTES)
    second = await store.create_collection("quotes", QUOTES)

    assert first is second
    assert store.has_collection("quotes")
    assert not store.has_collection("karma")


@pytest.mark.asyncio
async def test_unknown_collection_and_field_raise(store) -> None:
    with pytest.raises(StoreError):
        await store.fetch("missing")

    await store.create_collection("quotes", QUOTES)
    with pytest.raises(StoreError):
        await store.fetch("quotes", where={"nope": 1})


@pytest.mark.asyncio
async def test_put_fetch_update_remove(store) -> None:
    await store.create_collection("quotes", QUOTES)

    first = await store.put("quotes", {"author": "alice", "text": "hi"})
    assert first == 1
    assert await store.put_all(
        "quotes",
        [
            {"author": "bob", "text": "hey", "score": 5},
            {"author": "alice", "text": "bye", "score": 2},
        ],
    ) == 2

    assert (await store.fetch_by_id("quotes", first))["score"] == 0
    assert await store.count("quotes") == 3
    assert await store.count("quotes", where={"author": "alice"}) == 2

    ordered = await store.fetch("quotes", columns=["text"], order_by="-score")
    assert ordered == [{"text": "hey"}, {"text": "bye"}, {"text": "hi"}]
    assert await store.fetch("quotes", order_by="score", limit=1, columns=["id"]) == [
        {"id": first}
    ]

    assert await store.update("quotes", {"author": "alice"}, {"score": 9}) == 2
    assert await store.update_by_id("quotes", first, {"text": "hello"}) is True
    assert await store.update_by_id("quotes", 999, {"text": "nobody"}) is False
    assert (await store.fetch_one("quotes", where={"id": first}))["text"] == "hello"

    assert await store.remove("quotes", where={"author": "bob"}) == 1
    assert await store.fetch_one("quotes", where={"author": "bob"}) is None
    assert await store.remove("quotes") == 2
    assert await store.count("quotes") == 0


@pytest.mark.asyncio
async def test_data_survives_a_new_store(tmp_path) -> None:
    db_path = str(tmp_path / "nested" / "bot.db")
    first = CollectionStore(StorageEngine(db_path))
    await first.create_collection("quotes", QUOTES)
    await first.put("quotes", {"author": "alice", "text": "persisted"})
    await first.close()

    second = CollectionStore(StorageEngine(db_path))
    await second.create_collection("quotes", QUOTES)
    try:
        assert await second.fetch("quotes", columns=["text"]) == [{"text": "persisted"}]
    finally:
        await second.close()
