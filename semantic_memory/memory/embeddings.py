"""Sentence embedding generation and cosine similarity."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Sequence

import numpy as np
from loguru import logger

from semantic_memory.memory.entry import MemoryEmbedding
from semantic_memory.memory.errors import DimensionMismatchError, EmbeddingError
from semantic_memory.memory.lifecycle import AsyncInitializer, InitState

DEFAULT_MODEL = "sentence-transformers/all-MiniLM-L6-v2"
DEFAULT_DIMENSIONS = 384

ModelLoader = Callable[[str, str | None], Any]


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity ``dot(a, b) / (|a| * |b|)``.

    Works for any finite vectors, normalized or not. Returns 0.0 when
    either vector has zero length.

    Raises:
        DimensionMismatchError: If the vectors differ in length.
    """
    if len(a) != len(b):
        raise DimensionMismatchError(len(a), len(b))

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0
    return float(np.dot(va, vb) / denom)


def _load_sentence_transformer(model_name: str, device: str | None) -> Any:
    from sentence_transformers import SentenceTransformer

    return SentenceTransformer(model_name, device=device)


class EmbeddingService:
    """
    Maps text to normalized dense vectors with a sentence-transformers model.

    The model is loaded once, on first use or on an explicit initialize().
    Concurrent callers during the load share the same attempt. Mean pooling
    comes from the model's pooling layer; vectors are L2-normalized so
    self-similarity is 1.
    """

    def __init__(
        self,
        model_name: str = DEFAULT_MODEL,
        dimensions: int = DEFAULT_DIMENSIONS,
        device: str | None = None,
        model_loader: ModelLoader | None = None,
    ) -> None:
        self.model_name = model_name
        self.dimensions = dimensions
        self.device = device
        self._loader = model_loader or _load_sentence_transformer
        self._model: Any = None
        self._init = AsyncInitializer(f"EmbeddingService[{model_name}]", self._load)

    @property
    def state(self) -> InitState:
        return self._init.state

    async def initialize(self) -> None:
        """Load the model if it is not loaded yet."""
        await self._init.ensure()

    async def _load(self) -> None:
        logger.info(f"Loading embedding model {self.model_name}")
        try:
            self._model = await asyncio.to_thread(self._loader, self.model_name, self.device)
        except Exception as e:
            raise EmbeddingError(f"Failed to load embedding model {self.model_name}: {e}") from e
        logger.info(f"Embedding model {self.model_name} loaded")

    async def embed(self, text: str) -> MemoryEmbedding:
        """
        Embed a single text.

        Args:
            text: Input text.

        Returns:
            The normalized embedding.

        Raises:
            EmbeddingError: If the model cannot be loaded, inference fails,
                or the output is not a finite vector of the configured size.
        """
        await self.initialize()

        try:
            output = await asyncio.to_thread(
                self._model.encode,
                text,
                normalize_embeddings=True,
                convert_to_numpy=True,
            )
        except Exception as e:
            raise EmbeddingError(f"Embedding inference failed: {e}") from e

        vector = np.asarray(output, dtype=np.float64).reshape(-1)
        if vector.size != self.dimensions:
            raise EmbeddingError(
                f"Model {self.model_name} produced {vector.size} dimensions, "
                f"expected {self.dimensions}"
            )
        if not np.all(np.isfinite(vector)):
            raise EmbeddingError(f"Model {self.model_name} produced non-finite values")

        return MemoryEmbedding.from_vector(vector.tolist())

    def similarity(self, a: Sequence[float], b: Sequence[float]) -> float:
        """Cosine similarity between two vectors (see cosine_similarity)."""
        return cosine_similarity(a, b)
