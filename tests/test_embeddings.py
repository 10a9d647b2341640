"""Tests for EmbeddingService and cosine similarity."""

import asyncio
import math

import numpy as np
import pytest

from semantic_memory.memory.embeddings import EmbeddingService, cosine_similarity
from semantic_memory.memory.errors import DimensionMismatchError, EmbeddingError
from semantic_memory.memory.lifecycle import InitState

from fakes import FAKE_DIMENSIONS, FakeLoader, UnreachableLoader


# --- cosine_similarity ---

def test_orthogonal_vectors_are_dissimilar():
    assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)


@pytest.mark.parametrize(
    "vector",
    [[1.0, 2.0, 3.0], [-4.5, 0.0, 2.25, 9.0], [1e-3], [1e6, -1e6]],
)
def test_self_similarity_is_one(vector):
    assert cosine_similarity(vector, vector) == pytest.approx(1.0)


def test_similarity_is_scale_invariant():
    assert cosine_similarity([1, 2, 3], [2, 4, 6]) == pytest.approx(1.0)
    assert cosine_similarity([1, 2, 3], [-1, -2, -3]) == pytest.approx(-1.0)


def test_similarity_of_unnormalized_vectors():
    expected = (3 * 1 + 4 * 0) / (5 * 1)
    assert cosine_similarity([3, 4], [1, 0]) == pytest.approx(expected)


def test_dimension_mismatch_raises():
    with pytest.raises(DimensionMismatchError) as exc_info:
        cosine_similarity([1, 2, 3], [1, 2, 3, 4])
    assert exc_info.value.left == 3
    assert exc_info.value.right == 4


def test_zero_vector_similarity_is_zero():
    assert cosine_similarity([0, 0, 0], [1, 2, 3]) == 0.0


def test_service_similarity_delegates(embeddings):
    assert embeddings.similarity([1, 0], [0, 1]) == pytest.approx(0.0)
    with pytest.raises(DimensionMismatchError):
        embeddings.similarity([1, 2, 3], [1, 2, 3, 4])


# --- embed ---

@pytest.mark.asyncio
async def test_embed_returns_normalized_vector(embeddings):
    embedding = await embeddings.embed("My favorite color is blue")

    assert embedding.dimensions == FAKE_DIMENSIONS
    assert len(embedding.vector) == FAKE_DIMENSIONS
    assert math.isclose(float(np.linalg.norm(embedding.vector)), 1.0, rel_tol=1e-6)
    assert embeddings.similarity(embedding.vector, embedding.vector) == pytest.approx(1.0)


@pytest.mark.asyncio
async def test_embed_passes_normalization_flag(embeddings, fake_loader):
    calls = []
    original = fake_loader.model.encode

    def spy(text, **kwargs):
        calls.append(kwargs)
        return original(text, **kwargs)

    fake_loader.model.encode = spy
    await embeddings.embed("hello")
    assert calls == [{"normalize_embeddings": True, "convert_to_numpy": True}]


@pytest.mark.asyncio
async def test_related_texts_score_higher(embeddings):
    color = await embeddings.embed("My favorite color is blue")
    pizza = await embeddings.embed("I like pizza for dinner")
    query = await embeddings.embed("favorite color")

    assert embeddings.similarity(query.vector, color.vector) > 0.5
    assert embeddings.similarity(query.vector, pizza.vector) == pytest.approx(0.0)


@pytest.mark.asyncio
async def test_embed_lazily_initializes(embeddings, fake_loader):
    assert embeddings.state is InitState.UNINITIALIZED
    await embeddings.embed("hello")
    await embeddings.embed("again")
    assert embeddings.state is InitState.READY
    assert fake_loader.loads == 1


@pytest.mark.asyncio
async def test_inference_failure_raises_embedding_error(embeddings, fake_loader):
    fake_loader.model.fail = True
    with pytest.raises(EmbeddingError):
        await embeddings.embed("hello")


@pytest.mark.asyncio
async def test_wrong_output_size_raises_embedding_error(fake_loader):
    service = EmbeddingService(model_name="fake", dimensions=384, model_loader=fake_loader)
    with pytest.raises(EmbeddingError, match="384"):
        await service.embed("hello")


@pytest.mark.asyncio
async def test_non_finite_output_raises_embedding_error():
    class NaNModel:
        def encode(self, text, **kwargs):
            return np.full(4, np.nan, dtype=np.float32)

    service = EmbeddingService(model_name="nan", dimensions=4, model_loader=lambda name, device: NaNModel())
    with pytest.raises(EmbeddingError, match="non-finite"):
        await service.embed("hello")


# --- initialize ---

@pytest.mark.asyncio
async def test_concurrent_initialize_loads_model_once():
    loader = FakeLoader(delay=0.05)
    service = EmbeddingService(model_name="fake", dimensions=FAKE_DIMENSIONS, model_loader=loader)

    await asyncio.gather(*(service.initialize() for _ in range(10)))

    assert loader.loads == 1
    assert service.state is InitState.READY


@pytest.mark.asyncio
async def test_concurrent_embed_during_load_shares_attempt():
    loader = FakeLoader(delay=0.05)
    service = EmbeddingService(model_name="fake", dimensions=FAKE_DIMENSIONS, model_loader=loader)

    results = await asyncio.gather(*(service.embed(f"text {i}") for i in range(5)))

    assert loader.loads == 1
    assert all(r.dimensions == FAKE_DIMENSIONS for r in results)


@pytest.mark.asyncio
async def test_failed_load_is_retried():
    loader = FakeLoader(failures=1)
    service = EmbeddingService(model_name="fake", dimensions=FAKE_DIMENSIONS, model_loader=loader)

    with pytest.raises(EmbeddingError, match="Failed to load"):
        await service.initialize()
    assert service.state is InitState.UNINITIALIZED

    await service.initialize()
    assert service.state is InitState.READY
    assert loader.loads == 2


@pytest.mark.asyncio
async def test_failed_load_reaches_every_waiter():
    loader = UnreachableLoader(delay=0.05)
    service = EmbeddingService(model_name="fake", dimensions=FAKE_DIMENSIONS, model_loader=loader)

    results = await asyncio.gather(
        *(service.initialize() for _ in range(4)), return_exceptions=True
    )

    assert loader.loads == 1
    assert all(isinstance(r, EmbeddingError) for r in results)
