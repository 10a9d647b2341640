"""Linear-scan semantic ranking of memories against a query."""

from __future__ import annotations

from typing import Sequence

from loguru import logger

from semantic_memory.memory.embeddings import EmbeddingService
from semantic_memory.memory.entry import Memory, MemorySearchResult


class SimilaritySearch:
    """Scores candidate memories by cosine similarity to a query string."""

    def __init__(self, embeddings: EmbeddingService) -> None:
        self._embeddings = embeddings

    async def rank(
        self,
        query: str,
        candidates: Sequence[Memory],
        threshold: float,
        limit: int,
    ) -> list[MemorySearchResult]:
        """
        Rank candidates against a query.

        Candidates without an embedding are skipped. Results below the
        threshold are dropped; the rest are sorted by similarity (highest
        first, ties in input order) and truncated to ``limit``.

        Args:
            query: Search text, embedded once.
            candidates: Memories to score, typically newest first.
            threshold: Minimum similarity, inclusive.
            limit: Maximum number of results.

        Returns:
            Ranked search results, possibly empty.
        """
        searchable = [m for m in candidates if m.embedding is not None]
        if not searchable:
            return []

        query_embedding = await self._embeddings.embed(query)

        results: list[MemorySearchResult] = []
        for memory in searchable:
            similarity = self._embeddings.similarity(
                query_embedding.vector, memory.embedding.vector
            )
            if similarity >= threshold:
                results.append(MemorySearchResult(memory=memory, similarity=similarity))

        # sorted() is stable, so equal scores keep candidate order
        results = sorted(results, key=lambda r: r.similarity, reverse=True)[:limit]
        logger.debug(
            f"SimilaritySearch: {len(results)} of {len(candidates)} candidates "
            f"matched (threshold={threshold}, limit={limit})"
        )
        return results
