"""MemoryService -- single entry point for memory lifecycle and search."""

from __future__ import annotations

import math
from typing import Any

from loguru import logger

from semantic_memory.config.schema import SearchConfig
from semantic_memory.memory.backend import MemoryBackend
from semantic_memory.memory.embeddings import EmbeddingService
from semantic_memory.memory.entry import (
    Memory,
    MemoryEmbedding,
    MemoryFilter,
    MemorySearchOptions,
    MemorySearchResult,
    create_memory,
)
from semantic_memory.memory.errors import EmbeddingError, NotFoundError, ValidationError
from semantic_memory.memory.search import SimilaritySearch


class MemoryService:
    """
    Orchestrates storage, embedding and search.

    Adding a memory never fails because of the embedding model: if
    embedding fails the record is stored without one and simply does not
    take part in semantic search.
    """

    def __init__(
        self,
        store: MemoryBackend,
        embeddings: EmbeddingService,
        search: SimilaritySearch | None = None,
        defaults: SearchConfig | None = None,
    ) -> None:
        self._store = store
        self._embeddings = embeddings
        self._search = search or SimilaritySearch(embeddings)
        self._defaults = defaults or SearchConfig()

    @property
    def store(self) -> MemoryBackend:
        return self._store

    @property
    def embeddings(self) -> EmbeddingService:
        return self._embeddings

    @property
    def defaults(self) -> SearchConfig:
        return self._defaults

    async def initialize(self) -> None:
        """Initialize the store and load the embedding model. Idempotent."""
        await self._store.initialize()
        await self._embeddings.initialize()

    async def add_memory(
        self,
        content: str,
        session_id: str | None = None,
        agent_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Memory:
        """
        Create, embed and persist a new memory.

        Args:
            content: Memory text.
            session_id: Optional session tag.
            agent_id: Optional agent tag.
            metadata: Optional flat mapping of scalar attributes.

        Returns:
            The stored memory (without an embedding if generation failed).

        Raises:
            ValidationError: If content or metadata is malformed.
            StorageError: If the record cannot be persisted.
        """
        memory = create_memory(content, session_id, agent_id, metadata)
        memory.embedding = await self._try_embed(memory)
        await self._store.put(memory)
        logger.info(
            f"Memory stored: {memory.id} "
            f"({'embedded' if memory.has_embedding else 'no embedding'})"
        )
        return memory

    async def _try_embed(self, memory: Memory) -> MemoryEmbedding | None:
        try:
            return await self._embeddings.embed(memory.content)
        except EmbeddingError as e:
            logger.warning(f"Failed to generate embedding for memory {memory.id}: {e}")
            return None

    async def search_memories(
        self,
        query: str,
        options: MemorySearchOptions | None = None,
    ) -> list[MemorySearchResult]:
        """
        Find memories semantically similar to a query.

        Args:
            query: Search text.
            options: Threshold, limit and filter; unset values use defaults.

        Returns:
            Results ordered by similarity, highest first.

        Raises:
            ValidationError: If the query is blank or an option is out of range.
            EmbeddingError: If the query cannot be embedded.
        """
        options = options or MemorySearchOptions()
        if not isinstance(query, str) or not query.strip():
            raise ValidationError("query must be a non-empty string")
        threshold = self._resolve_threshold(options.threshold)
        limit = self._resolve_limit(options.limit)

        memories = await self._store.list_all(options.filter)
        if not memories:
            return []

        return await self._search.rank(query, memories, threshold=threshold, limit=limit)

    def _resolve_threshold(self, threshold: float | None) -> float:
        if threshold is None:
            return self._defaults.threshold
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
            raise ValidationError(f"threshold must be a number, got {threshold!r}")
        if not math.isfinite(threshold) or not 0.0 <= threshold <= 1.0:
            raise ValidationError(f"threshold must be between 0 and 1, got {threshold}")
        return float(threshold)

    def _resolve_limit(self, limit: int | None) -> int:
        if limit is None:
            return self._defaults.limit
        if isinstance(limit, bool) or not isinstance(limit, int):
            raise ValidationError(f"limit must be an integer, got {limit!r}")
        if limit < 1:
            raise ValidationError(f"limit must be positive, got {limit}")
        return limit

    async def get_memory(self, memory_id: str) -> Memory | None:
        return await self._store.get(memory_id)

    async def get_all_memories(self, filter: MemoryFilter | None = None) -> list[Memory]:
        return await self._store.list_all(filter)

    async def delete_memory(self, memory_id: str, missing_ok: bool = True) -> bool:
        """
        Delete a memory by ID.

        Args:
            memory_id: ID of the memory to delete.
            missing_ok: When False, an unknown ID raises NotFoundError.

        Returns:
            True if deleted, False if not found.
        """
        deleted = await self._store.delete(memory_id)
        if not deleted and not missing_ok:
            raise NotFoundError(memory_id)
        return deleted

    async def close(self) -> None:
        await self._store.close()
