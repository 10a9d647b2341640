"""Memory data model and search value types."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from semantic_memory.memory.errors import ValidationError

MetadataValue = str | int | float | bool


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def generate_id() -> str:
    """Return a new globally unique memory ID."""
    return uuid4().hex


def validate_metadata(metadata: dict[str, Any] | None) -> dict[str, MetadataValue] | None:
    """
    Check that metadata is a flat mapping of string keys to scalars.

    Args:
        metadata: Candidate metadata mapping, or None.

    Returns:
        A shallow copy of the mapping, or None when no metadata was given.

    Raises:
        ValidationError: If a key is not a string or a value is not a
            finite scalar.
    """
    if metadata is None:
        return None
    if not isinstance(metadata, dict):
        raise ValidationError(f"metadata must be a mapping, got {type(metadata).__name__}")

    for key, value in metadata.items():
        if not isinstance(key, str):
            raise ValidationError(f"metadata key {key!r} must be a string")
        if not isinstance(value, (str, int, float, bool)):
            raise ValidationError(
                f"metadata value for {key!r} must be a string, number or boolean"
            )
        if isinstance(value, float) and not math.isfinite(value):
            raise ValidationError(f"metadata value for {key!r} must be finite")

    return dict(metadata)


@dataclass(frozen=True)
class MemoryEmbedding:
    """
    Dense vector representation of a memory's content.

    Attributes:
        vector: Embedding components.
        dimensions: Number of components; always equals ``len(vector)``.
    """

    vector: list[float]
    dimensions: int

    def __post_init__(self) -> None:
        if self.dimensions != len(self.vector):
            raise ValidationError(
                f"embedding declares {self.dimensions} dimensions but has {len(self.vector)}"
            )
        if not all(math.isfinite(v) for v in self.vector):
            raise ValidationError("embedding contains non-finite components")

    @classmethod
    def from_vector(cls, vector: list[float]) -> MemoryEmbedding:
        values = [float(v) for v in vector]
        return cls(vector=values, dimensions=len(values))


@dataclass
class Memory:
    """
    A single stored memory.

    Attributes:
        id: Unique identifier, assigned at creation.
        content: The memory text.
        session_id: Optional session scope tag.
        agent_id: Optional agent scope tag.
        metadata: Optional flat mapping of scalar attributes.
        embedding: Present only if embedding generation succeeded.
        created_at: Creation time (UTC).
        updated_at: Last update time (UTC); equals created_at for new records.
    """

    id: str
    content: str
    session_id: str | None = None
    agent_id: str | None = None
    metadata: dict[str, MetadataValue] | None = None
    embedding: MemoryEmbedding | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.updated_at is None:
            self.updated_at = self.created_at

    @property
    def has_embedding(self) -> bool:
        return self.embedding is not None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict (the embedding is summarized)."""
        data: dict[str, Any] = {
            "id": self.id,
            "content": self.content,
            "sessionId": self.session_id,
            "agentId": self.agent_id,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "hasEmbedding": self.has_embedding,
        }
        if self.metadata is not None:
            data["metadata"] = self.metadata
        return data


def create_memory(
    content: str,
    session_id: str | None = None,
    agent_id: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> Memory:
    """
    Build a new memory with a fresh ID and matching timestamps.

    Raises:
        ValidationError: If content is blank or metadata is malformed.
    """
    if not isinstance(content, str) or not content.strip():
        raise ValidationError("content must be a non-empty string")

    now = utcnow()
    return Memory(
        id=generate_id(),
        content=content,
        session_id=session_id,
        agent_id=agent_id,
        metadata=validate_metadata(metadata),
        created_at=now,
        updated_at=now,
    )


@dataclass
class MemoryFilter:
    """Equality constraints narrowing which memories are listed or searched."""

    session_id: str | None = None
    agent_id: str | None = None
    metadata: dict[str, MetadataValue] | None = None

    def matches_metadata(self, memory: Memory) -> bool:
        """True if every constrained metadata key is present with an equal value."""
        if not self.metadata:
            return True
        if memory.metadata is None:
            return False
        for key, expected in self.metadata.items():
            if key not in memory.metadata:
                return False
            actual = memory.metadata[key]
            # keep True from matching 1
            if isinstance(actual, bool) != isinstance(expected, bool) or actual != expected:
                return False
        return True


@dataclass
class MemorySearchOptions:
    """Search parameters; None fields fall back to configured defaults."""

    threshold: float | None = None
    limit: int | None = None
    filter: MemoryFilter | None = None


@dataclass
class MemorySearchResult:
    """A memory paired with its similarity to the search query."""

    memory: Memory
    similarity: float

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.memory.id,
            "content": self.memory.content,
            "similarity": self.similarity,
            "createdAt": self.memory.created_at.isoformat(),
        }
        if self.memory.metadata is not None:
            data["metadata"] = self.memory.metadata
        return data
