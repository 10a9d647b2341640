"""Memory tools: structured add/search/delete/get over MemoryService."""

from __future__ import annotations

import json
from typing import Any

from loguru import logger

from semantic_memory.memory.entry import MemoryFilter, MemorySearchOptions
from semantic_memory.memory.errors import MemoryStoreError, NotFoundError
from semantic_memory.memory.service import MemoryService
from semantic_memory.tools.base import Tool

_SCALAR = {"anyOf": [{"type": "string"}, {"type": "number"}, {"type": "boolean"}]}


def _ok(**payload: Any) -> str:
    return json.dumps({"success": True, **payload}, ensure_ascii=False)


def _fail(error: str) -> str:
    return json.dumps({"success": False, "error": error}, ensure_ascii=False)


class _MemoryTool(Tool):
    def __init__(self, service: MemoryService) -> None:
        self._service = service


class AddMemoryTool(_MemoryTool):
    """Store a new memory."""

    @property
    def name(self) -> str:
        return "add_memory"

    @property
    def description(self) -> str:
        return "Stores a new memory entry for retrieval later"

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "content": {
                    "type": "string",
                    "minLength": 1,
                    "description": "Text content to store as a memory",
                },
                "sessionId": {"type": "string", "description": "Session identifier (optional)"},
                "agentId": {"type": "string", "description": "Agent identifier (optional)"},
                "metadata": {
                    "type": "object",
                    "additionalProperties": _SCALAR,
                    "description": "Additional metadata to store with the memory (optional)",
                },
            },
            "required": ["content"],
        }

    async def execute(self, **kwargs: Any) -> str:
        try:
            memory = await self._service.add_memory(
                kwargs["content"],
                session_id=kwargs.get("sessionId"),
                agent_id=kwargs.get("agentId"),
                metadata=kwargs.get("metadata"),
            )
        except MemoryStoreError as e:
            logger.warning(f"add_memory failed: {e}")
            return _fail(str(e))
        return _ok(id=memory.id, message="Memory stored successfully")


class SearchMemoryTool(_MemoryTool):
    """Search memories by semantic similarity."""

    @property
    def name(self) -> str:
        return "search_memory"

    @property
    def description(self) -> str:
        return "Searches for memories based on semantic similarity to the query"

    @property
    def parameters(self) -> dict[str, Any]:
        defaults = self._service.defaults
        return {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "minLength": 1,
                    "description": "The search query text to find relevant memories",
                },
                "sessionId": {
                    "type": "string",
                    "description": "Session identifier to filter memories by (optional)",
                },
                "agentId": {
                    "type": "string",
                    "description": "Agent identifier to filter memories by (optional)",
                },
                "threshold": {
                    "type": "number",
                    "minimum": 0,
                    "maximum": 1,
                    "description": f"Similarity threshold between 0 and 1 (default: {defaults.threshold})",
                },
                "limit": {
                    "type": "integer",
                    "minimum": 1,
                    "description": f"Maximum number of results to return (default: {defaults.limit})",
                },
            },
            "required": ["query"],
        }

    async def execute(self, **kwargs: Any) -> str:
        options = MemorySearchOptions(
            threshold=kwargs.get("threshold"),
            limit=kwargs.get("limit"),
            filter=MemoryFilter(
                session_id=kwargs.get("sessionId"),
                agent_id=kwargs.get("agentId"),
            ),
        )
        try:
            results = await self._service.search_memories(kwargs["query"], options)
        except MemoryStoreError as e:
            logger.error(f"Error searching memories: {e}")
            return _fail(str(e))

        payload = [result.to_dict() for result in results]
        return _ok(count=len(payload), results=payload)


class DeleteMemoryTool(_MemoryTool):
    """Delete a memory by ID."""

    @property
    def name(self) -> str:
        return "delete_memory"

    @property
    def description(self) -> str:
        return "Deletes a specific memory by ID"

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "memoryId": {"type": "string", "minLength": 1, "description": "ID of the memory to delete"},
            },
            "required": ["memoryId"],
        }

    async def execute(self, **kwargs: Any) -> str:
        try:
            await self._service.delete_memory(kwargs["memoryId"], missing_ok=False)
        except NotFoundError:
            return _fail("Memory not found")
        except MemoryStoreError as e:
            logger.warning(f"delete_memory failed: {e}")
            return _fail(str(e))
        return _ok(message="Memory deleted successfully")


class GetMemoryTool(_MemoryTool):
    """Fetch a single memory by ID."""

    @property
    def name(self) -> str:
        return "get_memory"

    @property
    def description(self) -> str:
        return "Retrieves a specific memory by ID"

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "memoryId": {"type": "string", "minLength": 1, "description": "ID of the memory to fetch"},
            },
            "required": ["memoryId"],
        }

    async def execute(self, **kwargs: Any) -> str:
        try:
            memory = await self._service.get_memory(kwargs["memoryId"])
        except MemoryStoreError as e:
            logger.warning(f"get_memory failed: {e}")
            return _fail(str(e))
        if memory is None:
            return _fail("Memory not found")
        return _ok(memory=memory.to_dict())


def build_memory_tools(service: MemoryService) -> list[Tool]:
    """Create the standard memory tool set bound to a service."""
    return [
        AddMemoryTool(service),
        SearchMemoryTool(service),
        DeleteMemoryTool(service),
        GetMemoryTool(service),
    ]
