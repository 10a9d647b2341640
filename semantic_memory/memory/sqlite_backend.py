"""SQLite memory backend with float32 embedding blobs."""

from __future__ import annotations

import asyncio
import json
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, TypeVar

import numpy as np
from loguru import logger

from semantic_memory.memory.backend import MemoryBackend
from semantic_memory.memory.entry import Memory, MemoryEmbedding, MemoryFilter
from semantic_memory.memory.errors import StorageError, ValidationError
from semantic_memory.memory.lifecycle import AsyncInitializer, InitState

T = TypeVar("T")

# Little-endian float32, independent of host byte order.
EMBEDDING_DTYPE = np.dtype("<f4")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS memories (
    id TEXT PRIMARY KEY,
    session_id TEXT,
    agent_id TEXT,
    content TEXT NOT NULL,
    metadata TEXT,
    embedding BLOB,
    dimensions INTEGER,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_memories_session_id ON memories(session_id);
CREATE INDEX IF NOT EXISTS idx_memories_agent_id ON memories(agent_id);
CREATE INDEX IF NOT EXISTS idx_memories_created_at ON memories(created_at);
"""


def encode_embedding(embedding: MemoryEmbedding) -> bytes:
    """Pack an embedding as a little-endian float32 array."""
    return np.asarray(embedding.vector, dtype=EMBEDDING_DTYPE).tobytes()


def decode_embedding(blob: bytes, dimensions: int) -> MemoryEmbedding:
    """Unpack a float32 blob written by encode_embedding."""
    if len(blob) != dimensions * EMBEDDING_DTYPE.itemsize:
        raise ValueError(
            f"blob holds {len(blob)} bytes, expected {dimensions * EMBEDDING_DTYPE.itemsize}"
        )
    vector = np.frombuffer(blob, dtype=EMBEDDING_DTYPE).astype(float).tolist()
    return MemoryEmbedding(vector=vector, dimensions=dimensions)


def encode_metadata(metadata: dict[str, Any] | None) -> str | None:
    if metadata is None:
        return None
    try:
        return json.dumps(metadata, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"metadata is not serializable: {e}") from e


def encode_timestamp(value: datetime) -> str:
    # Fixed-width UTC so lexical order matches chronological order.
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


class SQLiteBackend(MemoryBackend):
    """
    Memory backend storing records in a single SQLite table.

    Statements run in worker threads so the event loop is never blocked;
    a lock serializes access to the shared connection. The database file
    and schema are created on first use.
    """

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = db_path if str(db_path) == ":memory:" else Path(db_path).expanduser()
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()
        self._init = AsyncInitializer("SQLiteBackend", self._open)

    @property
    def db_path(self) -> Path | str:
        return self._db_path

    @property
    def state(self) -> InitState:
        return self._init.state

    async def initialize(self) -> None:
        await self._init.ensure()

    async def _open(self) -> None:
        try:
            self._conn = await asyncio.to_thread(self._connect)
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"Failed to open database at {self._db_path}: {e}") from e
        logger.debug(f"SQLiteBackend: opened {self._db_path}")

    def _connect(self) -> sqlite3.Connection:
        if isinstance(self._db_path, Path):
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        conn.row_factory = sqlite3.Row
        try:
            conn.executescript(_SCHEMA)
            conn.commit()
        except sqlite3.Error:
            conn.close()
            raise
        return conn

    async def _run(self, operation: str, fn: Callable[[sqlite3.Connection], T]) -> T:
        await self.initialize()

        def locked() -> T:
            with self._lock:
                if self._conn is None:
                    raise StorageError("Database connection is closed")
                return fn(self._conn)

        try:
            return await asyncio.to_thread(locked)
        except sqlite3.Error as e:
            raise StorageError(f"SQLiteBackend: {operation} failed: {e}") from e

    async def put(self, memory: Memory) -> str:
        params = (
            memory.id,
            memory.session_id,
            memory.agent_id,
            memory.content,
            encode_metadata(memory.metadata),
            encode_embedding(memory.embedding) if memory.embedding else None,
            memory.embedding.dimensions if memory.embedding else None,
            encode_timestamp(memory.created_at),
            encode_timestamp(memory.updated_at),
        )

        def insert(conn: sqlite3.Connection) -> None:
            with conn:
                conn.execute(
                    """
                    INSERT INTO memories
                    (id, session_id, agent_id, content, metadata, embedding,
                     dimensions, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    params,
                )

        await self._run("insert", insert)
        logger.debug(f"SQLiteBackend: stored memory {memory.id}")
        return memory.id

    async def get(self, memory_id: str) -> Memory | None:
        row = await self._run(
            "get",
            lambda conn: conn.execute(
                "SELECT * FROM memories WHERE id = ?", (memory_id,)
            ).fetchone(),
        )
        if row is None:
            return None
        return self._row_to_memory(row)

    async def list_all(self, filter: MemoryFilter | None = None) -> list[Memory]:
        query = "SELECT * FROM memories"
        conditions: list[str] = []
        params: list[Any] = []

        if filter is not None:
            if filter.session_id is not None:
                conditions.append("session_id = ?")
                params.append(filter.session_id)
            if filter.agent_id is not None:
                conditions.append("agent_id = ?")
                params.append(filter.agent_id)

        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY created_at DESC, rowid DESC"

        rows = await self._run("list", lambda conn: conn.execute(query, params).fetchall())
        memories = [self._row_to_memory(row) for row in rows]

        if filter is not None and filter.metadata:
            memories = [m for m in memories if filter.matches_metadata(m)]
        return memories

    async def delete(self, memory_id: str) -> bool:
        def remove(conn: sqlite3.Connection) -> int:
            with conn:
                return conn.execute("DELETE FROM memories WHERE id = ?", (memory_id,)).rowcount

        deleted = await self._run("delete", remove) > 0
        if deleted:
            logger.debug(f"SQLiteBackend: deleted memory {memory_id}")
        return deleted

    async def close(self) -> None:
        if self._conn is None:
            return

        def shutdown() -> None:
            with self._lock:
                if self._conn is not None:
                    self._conn.close()
                    self._conn = None

        await asyncio.to_thread(shutdown)
        self._init.reset()
        logger.debug(f"SQLiteBackend: closed {self._db_path}")

    def _row_to_memory(self, row: sqlite3.Row) -> Memory:
        """Convert a database row back into a Memory."""
        memory_id = row["id"]

        embedding: MemoryEmbedding | None = None
        if row["embedding"] is not None and row["dimensions"]:
            try:
                embedding = decode_embedding(row["embedding"], row["dimensions"])
            except (ValueError, ValidationError) as e:
                logger.warning(f"SQLiteBackend: ignoring corrupt embedding on {memory_id}: {e}")

        metadata: dict[str, Any] | None = None
        if row["metadata"]:
            try:
                decoded = json.loads(row["metadata"])
                if not isinstance(decoded, dict):
                    raise ValueError(f"expected an object, got {type(decoded).__name__}")
                metadata = decoded
            except ValueError as e:
                logger.warning(f"SQLiteBackend: error parsing metadata on {memory_id}: {e}")

        try:
            created_at = datetime.fromisoformat(row["created_at"])
            updated_at = datetime.fromisoformat(row["updated_at"])
        except (TypeError, ValueError) as e:
            raise StorageError(f"SQLiteBackend: corrupt timestamp on {memory_id}: {e}") from e

        return Memory(
            id=memory_id,
            content=row["content"],
            session_id=row["session_id"],
            agent_id=row["agent_id"],
            metadata=metadata,
            embedding=embedding,
            created_at=created_at,
            updated_at=updated_at,
        )
