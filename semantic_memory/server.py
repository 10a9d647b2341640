"""MCP interface exposing the memory tools over FastMCP."""

from __future__ import annotations

import json
from typing import Any

from fastmcp import FastMCP
from loguru import logger

from semantic_memory.config.schema import Config
from semantic_memory.memory.errors import MemoryStoreError
from semantic_memory.runtime import MemoryRuntime

MetadataInput = dict[str, str | int | float | bool]


def _as_payload(result: str) -> dict[str, Any]:
    # Registry-level failures come back as plain "Error: ..." text.
    try:
        payload = json.loads(result)
    except ValueError:
        return {"success": False, "error": result}
    if not isinstance(payload, dict):
        return {"success": False, "error": result}
    return payload


def _params(**kwargs: Any) -> dict[str, Any]:
    return {key: value for key, value in kwargs.items() if value is not None}


def create_server(runtime: MemoryRuntime) -> FastMCP:
    """Build a FastMCP application bound to a runtime's tools."""
    mcp = FastMCP(runtime.config.server.name)

    @mcp.tool()
    async def add_memory(
        content: str,
        sessionId: str | None = None,
        agentId: str | None = None,
        metadata: MetadataInput | None = None,
    ) -> dict:
        """Stores a new memory entry for retrieval later.

        Args:
            content: Text content to store as a memory
            sessionId: Session identifier (optional)
            agentId: Agent identifier (optional)
            metadata: Additional metadata to store with the memory (optional)
        """
        result = await runtime.execute(
            "add_memory",
            _params(content=content, sessionId=sessionId, agentId=agentId, metadata=metadata),
        )
        return _as_payload(result)

    @mcp.tool()
    async def search_memory(
        query: str,
        sessionId: str | None = None,
        agentId: str | None = None,
        threshold: float | None = None,
        limit: int | None = None,
    ) -> dict:
        """Searches for memories based on semantic similarity to the query.

        Args:
            query: The search query text to find relevant memories
            sessionId: Session identifier to filter memories by (optional)
            agentId: Agent identifier to filter memories by (optional)
            threshold: Similarity threshold between 0 and 1
            limit: Maximum number of results to return
        """
        result = await runtime.execute(
            "search_memory",
            _params(
                query=query,
                sessionId=sessionId,
                agentId=agentId,
                threshold=threshold,
                limit=limit,
            ),
        )
        return _as_payload(result)

    @mcp.tool()
    async def delete_memory(memoryId: str) -> dict:
        """Deletes a specific memory by ID.

        Args:
            memoryId: ID of the memory to delete
        """
        return _as_payload(await runtime.execute("delete_memory", {"memoryId": memoryId}))

    @mcp.tool()
    async def get_memory(memoryId: str) -> dict:
        """Retrieves a specific memory by ID.

        Args:
            memoryId: ID of the memory to fetch
        """
        return _as_payload(await runtime.execute("get_memory", {"memoryId": memoryId}))

    return mcp


async def serve(config: Config) -> None:
    """
    Start the runtime and serve the memory tools over stdio.

    Raises:
        SystemExit: If the store or the embedding model fails to initialize.
    """
    runtime = MemoryRuntime.from_config(config)
    try:
        await runtime.start()
    except MemoryStoreError as e:
        logger.error(f"Failed to initialize memory components: {e}")
        raise SystemExit(1) from e

    server = create_server(runtime)
    logger.info(f"Starting MCP server '{config.server.name}'")
    try:
        await server.run_async()
    finally:
        await runtime.close()
