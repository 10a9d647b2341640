"""Abstract base class for memory persistence backends."""

from __future__ import annotations

from abc import ABC, abstractmethod

from semantic_memory.memory.entry import Memory, MemoryFilter


class MemoryBackend(ABC):
    """
    Abstract durable storage for memory records.

    Backends store records whole and never modify them in place.
    MemoryService works with any implementation of this interface.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """
        Prepare the backend for use.

        Must be idempotent and safe to call concurrently; data methods
        call it implicitly on first use.
        """

    @abstractmethod
    async def put(self, memory: Memory) -> str:
        """
        Insert a new memory.

        Args:
            memory: The memory to persist.

        Returns:
            The memory ID.

        Raises:
            StorageError: If the record cannot be written.
        """

    @abstractmethod
    async def get(self, memory_id: str) -> Memory | None:
        """
        Look up a memory by ID.

        Returns:
            The memory, or None if no record has that ID.
        """

    @abstractmethod
    async def list_all(self, filter: MemoryFilter | None = None) -> list[Memory]:
        """
        List memories matching a filter.

        Args:
            filter: Optional equality constraints; unset fields are unconstrained.

        Returns:
            Matching memories ordered by creation time (newest first).
        """

    @abstractmethod
    async def delete(self, memory_id: str) -> bool:
        """
        Delete a memory by ID.

        Returns:
            True if a record was removed, False if none existed.
        """

    async def close(self) -> None:
        """Release any held resources."""
