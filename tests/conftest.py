"""Shared fixtures for the memory tests."""

import asyncio
from pathlib import Path

import pytest

from semantic_memory.config.schema import SearchConfig
from semantic_memory.memory.embeddings import EmbeddingService
from semantic_memory.memory.service import MemoryService
from semantic_memory.memory.sqlite_backend import SQLiteBackend

from fakes import FAKE_DIMENSIONS, FakeLoader


@pytest.fixture
def fake_loader():
    return FakeLoader()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "memory.db"


@pytest.fixture
def store(db_path):
    backend = SQLiteBackend(db_path)
    yield backend
    asyncio.run(backend.close())


@pytest.fixture
def embeddings(fake_loader):
    return EmbeddingService(
        model_name="fake/bag-of-words",
        dimensions=FAKE_DIMENSIONS,
        model_loader=fake_loader,
    )


@pytest.fixture
def service(store, embeddings):
    return MemoryService(store, embeddings, defaults=SearchConfig())
