"""Exceptions raised by the memory store and retrieval engine."""


class MemoryStoreError(Exception):
    """Base class for all memory subsystem failures."""


class NotFoundError(MemoryStoreError):
    """Raised when a caller requires a memory that does not exist."""

    def __init__(self, memory_id: str) -> None:
        super().__init__(f"Memory not found: {memory_id}")
        self.memory_id = memory_id


class DimensionMismatchError(MemoryStoreError, ValueError):
    """Raised when two vectors of unequal length are compared."""

    def __init__(self, left: int, right: int) -> None:
        super().__init__(f"Embeddings must have the same dimensions ({left} != {right})")
        self.left = left
        self.right = right


class StorageError(MemoryStoreError):
    """Raised when the underlying database fails."""


class EmbeddingError(MemoryStoreError):
    """Raised when the embedding model cannot be loaded or inference fails."""


class ValidationError(MemoryStoreError, ValueError):
    """Raised for malformed content, metadata or search options."""
