"""Runtime assembly: builds and wires the memory components."""

from __future__ import annotations

from typing import Any

from loguru import logger

from semantic_memory.config.schema import Config
from semantic_memory.memory.backend import MemoryBackend
from semantic_memory.memory.embeddings import EmbeddingService, ModelLoader
from semantic_memory.memory.service import MemoryService
from semantic_memory.memory.sqlite_backend import SQLiteBackend
from semantic_memory.tools.base import ToolRegistry
from semantic_memory.tools.memory_tools import build_memory_tools


class MemoryRuntime:
    """
    Owns one store, one embedding service and one memory service.

    Every caller in the process (tools, server, CLI) shares these instances
    through the runtime instead of reaching for global singletons.
    """

    def __init__(
        self,
        store: MemoryBackend,
        embeddings: EmbeddingService,
        config: Config | None = None,
    ) -> None:
        self.config = config or Config()
        self.store = store
        self.embeddings = embeddings
        self.service = MemoryService(store, embeddings, defaults=self.config.search)
        self.tools = ToolRegistry()
        for tool in build_memory_tools(self.service):
            self.tools.register(tool)

    @classmethod
    def from_config(
        cls,
        config: Config,
        model_loader: ModelLoader | None = None,
    ) -> "MemoryRuntime":
        """Create a runtime from the root config."""
        store = SQLiteBackend(config.db_path)
        embeddings = EmbeddingService(
            model_name=config.embedding.model_name,
            dimensions=config.embedding.dimensions,
            device=config.embedding.device,
            model_loader=model_loader,
        )
        return cls(store, embeddings, config)

    async def start(self) -> None:
        """
        Initialize the store and, if configured, load the embedding model.

        Raises:
            StorageError: If the database cannot be opened.
            EmbeddingError: If the model is loaded eagerly and fails.
        """
        await self.store.initialize()
        if self.config.embedding.load_on_startup:
            await self.embeddings.initialize()
        logger.info(f"Memory runtime ready (db={self.config.db_path})")

    async def execute(self, tool_name: str, params: dict[str, Any]) -> str:
        """Run a registered memory tool by name."""
        return await self.tools.execute(tool_name, params)

    async def close(self) -> None:
        await self.service.close()
