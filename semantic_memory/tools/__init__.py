"""Memory tools module."""

from semantic_memory.tools.base import Tool, ToolRegistry
from semantic_memory.tools.memory_tools import (
    AddMemoryTool,
    DeleteMemoryTool,
    GetMemoryTool,
    SearchMemoryTool,
    build_memory_tools,
)

__all__ = [
    "AddMemoryTool",
    "DeleteMemoryTool",
    "GetMemoryTool",
    "SearchMemoryTool",
    "Tool",
    "ToolRegistry",
    "build_memory_tools",
]
