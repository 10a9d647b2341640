"""Memory store and semantic retrieval engine."""

from semantic_memory.memory.backend import MemoryBackend
from semantic_memory.memory.embeddings import EmbeddingService, cosine_similarity
from semantic_memory.memory.entry import (
    Memory,
    MemoryEmbedding,
    MemoryFilter,
    MemorySearchOptions,
    MemorySearchResult,
    create_memory,
)
from semantic_memory.memory.errors import (
    DimensionMismatchError,
    EmbeddingError,
    MemoryStoreError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from semantic_memory.memory.search import SimilaritySearch
from semantic_memory.memory.service import MemoryService
from semantic_memory.memory.sqlite_backend import SQLiteBackend

__all__ = [
    "DimensionMismatchError",
    "EmbeddingError",
    "EmbeddingService",
    "Memory",
    "MemoryBackend",
    "MemoryEmbedding",
    "MemoryFilter",
    "MemorySearchOptions",
    "MemorySearchResult",
    "MemoryService",
    "MemoryStoreError",
    "NotFoundError",
    "SQLiteBackend",
    "SimilaritySearch",
    "StorageError",
    "ValidationError",
    "cosine_similarity",
    "create_memory",
]
