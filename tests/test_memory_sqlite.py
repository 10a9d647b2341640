"""Tests for the SQLite memory backend."""

import asyncio
import sqlite3
from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from semantic_memory.memory.entry import Memory, MemoryEmbedding, MemoryFilter, create_memory
from semantic_memory.memory.errors import StorageError
from semantic_memory.memory.lifecycle import InitState
from semantic_memory.memory.sqlite_backend import (
    SQLiteBackend,
    decode_embedding,
    encode_embedding,
)

BASE_TIME = datetime(2026, 1, 1, 9, 0, 0, tzinfo=timezone.utc)


def _memory(memory_id: str, minutes: int = 0, **kwargs) -> Memory:
    created = BASE_TIME + timedelta(minutes=minutes)
    return Memory(id=memory_id, content=f"content of {memory_id}", created_at=created, **kwargs)


@pytest.mark.asyncio
async def test_sqlite_backend_crud(store):
    """Test Create, Read, Delete operations."""
    memory = create_memory("I love pizza", session_id="s1", agent_id="a1", metadata={"mood": "happy"})

    assert await store.put(memory) == memory.id

    loaded = await store.get(memory.id)
    assert loaded is not None
    assert loaded.content == "I love pizza"
    assert loaded.session_id == "s1"
    assert loaded.agent_id == "a1"
    assert loaded.metadata == {"mood": "happy"}
    assert loaded.embedding is None
    assert loaded.created_at == memory.created_at
    assert loaded.updated_at == loaded.created_at

    assert await store.delete(memory.id) is True
    assert await store.get(memory.id) is None
    assert await store.delete(memory.id) is False


@pytest.mark.asyncio
async def test_get_unknown_id_returns_none(store):
    assert await store.get("does-not-exist") is None


@pytest.mark.asyncio
async def test_schema_created_on_first_use(store, db_path):
    assert store.state is InitState.UNINITIALIZED
    assert await store.list_all() == []
    assert store.state is InitState.READY
    assert db_path.exists()

    conn = sqlite3.connect(db_path)
    indexes = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'index'")}
    conn.close()
    assert {"idx_memories_session_id", "idx_memories_agent_id"} <= indexes


@pytest.mark.asyncio
async def test_concurrent_first_use_opens_once(store, monkeypatch):
    opened = 0
    original = store._connect

    def counting_connect():
        nonlocal opened
        opened += 1
        return original()

    monkeypatch.setattr(store, "_connect", counting_connect)
    await asyncio.gather(*(store.put(_memory(f"m{i}", i)) for i in range(5)))

    assert opened == 1
    assert len(await store.list_all()) == 5


@pytest.mark.asyncio
async def test_embedding_round_trip(store):
    vector = [0.5, -0.25, 0.125, 1.0]
    memory = _memory("embedded", embedding=MemoryEmbedding.from_vector(vector))
    await store.put(memory)

    loaded = await store.get("embedded")
    assert loaded.embedding is not None
    assert loaded.embedding.dimensions == 4
    assert loaded.embedding.vector == pytest.approx(vector)


def test_embedding_blob_is_little_endian_float32():
    blob = encode_embedding(MemoryEmbedding.from_vector([1.0, 2.0]))
    assert len(blob) == 8
    assert blob == np.array([1.0, 2.0], dtype="<f4").tobytes()
    assert decode_embedding(blob, 2).vector == [1.0, 2.0]


def test_decode_embedding_rejects_wrong_length():
    with pytest.raises(ValueError):
        decode_embedding(b"\x00" * 12, 4)


@pytest.mark.asyncio
async def test_list_orders_newest_first(store):
    await store.put(_memory("old", minutes=0))
    await store.put(_memory("newest", minutes=10))
    await store.put(_memory("middle", minutes=5))

    ids = [m.id for m in await store.list_all()]
    assert ids == ["newest", "middle", "old"]


@pytest.mark.asyncio
async def test_list_ties_follow_insertion_order(store):
    for memory_id in ("first", "second", "third"):
        await store.put(_memory(memory_id, minutes=0))

    ids = [m.id for m in await store.list_all()]
    assert ids == ["third", "second", "first"]


@pytest.mark.asyncio
async def test_list_filters_by_session_and_agent(store):
    await store.put(_memory("s1-a1", 0, session_id="s1", agent_id="a1"))
    await store.put(_memory("s1-a2", 1, session_id="s1", agent_id="a2"))
    await store.put(_memory("s2-a1", 2, session_id="s2", agent_id="a1"))
    await store.put(_memory("untagged", 3))

    session_only = await store.list_all(MemoryFilter(session_id="s1"))
    assert [m.id for m in session_only] == ["s1-a2", "s1-a1"]
    assert all(m.session_id == "s1" for m in session_only)

    agent_only = await store.list_all(MemoryFilter(agent_id="a1"))
    assert [m.id for m in agent_only] == ["s2-a1", "s1-a1"]

    both = await store.list_all(MemoryFilter(session_id="s1", agent_id="a1"))
    assert [m.id for m in both] == ["s1-a1"]

    assert len(await store.list_all(MemoryFilter())) == 4
    assert len(await store.list_all()) == 4


@pytest.mark.asyncio
async def test_list_filters_by_metadata(store):
    await store.put(_memory("food", 0, metadata={"category": "food", "rating": 5}))
    await store.put(_memory("work", 1, metadata={"category": "work"}))
    await store.put(_memory("plain", 2))

    matched = await store.list_all(MemoryFilter(metadata={"category": "food"}))
    assert [m.id for m in matched] == ["food"]


@pytest.mark.asyncio
async def test_duplicate_id_raises_storage_error(store):
    await store.put(_memory("dup"))
    with pytest.raises(StorageError):
        await store.put(_memory("dup"))


@pytest.mark.asyncio
async def test_corrupt_metadata_reads_as_absent(store, db_path):
    await store.put(_memory("broken", metadata={"ok": True}))

    conn = sqlite3.connect(db_path)
    with conn:
        conn.execute("UPDATE memories SET metadata = ? WHERE id = ?", ("{not json", "broken"))
    conn.close()

    loaded = await store.get("broken")
    assert loaded is not None
    assert loaded.metadata is None
    assert loaded.content == "content of broken"


@pytest.mark.asyncio
async def test_corrupt_embedding_reads_as_absent(store, db_path):
    await store.put(_memory("short", embedding=MemoryEmbedding.from_vector([1.0, 0.0, 0.0])))

    conn = sqlite3.connect(db_path)
    with conn:
        conn.execute("UPDATE memories SET dimensions = 7 WHERE id = 'short'")
    conn.close()

    loaded = await store.get("short")
    assert loaded.embedding is None


@pytest.mark.asyncio
async def test_data_survives_reopen(db_path):
    first = SQLiteBackend(db_path)
    await first.put(_memory("persisted", metadata={"n": 1.5}))
    await first.close()
    assert first.state is InitState.UNINITIALIZED

    second = SQLiteBackend(db_path)
    loaded = await second.get("persisted")
    await second.close()

    assert loaded is not None
    assert loaded.metadata == {"n": 1.5}


@pytest.mark.asyncio
async def test_in_memory_database():
    backend = SQLiteBackend(":memory:")
    await backend.put(_memory("ephemeral"))
    assert [m.id for m in await backend.list_all()] == ["ephemeral"]
    await backend.close()


@pytest.mark.asyncio
async def test_unopenable_database_raises_storage_error(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file in the way")
    backend = SQLiteBackend(blocker / "memory.db")

    with pytest.raises(StorageError):
        await backend.initialize()
    assert backend.state is InitState.UNINITIALIZED


@pytest.mark.asyncio
async def test_corrupt_timestamp_raises_storage_error(store, db_path):
    await store.put(_memory("stamped"))

    conn = sqlite3.connect(db_path)
    with conn:
        conn.execute("UPDATE memories SET created_at = 'yesterday-ish' WHERE id = 'stamped'")
    conn.close()

    with pytest.raises(StorageError, match="corrupt timestamp"):
        await store.get("stamped")
    with pytest.raises(StorageError):
        await store.list_all()
