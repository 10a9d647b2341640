"""Tool interface and registry for the memory adapter layer."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from loguru import logger

from semantic_memory.utils.helpers import format_error


class Tool(ABC):
    """
    A named operation with a JSON-schema parameter contract.

    Only the schema subset the memory tools use is enforced: scalar and
    object types, numeric bounds, string length, required keys,
    ``additionalProperties`` and ``anyOf``.
    """

    _TYPE_MAP = {
        "string": str,
        "integer": int,
        "number": (int, float),
        "boolean": bool,
        "object": dict,
    }

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        pass

    @property
    @abstractmethod
    def parameters(self) -> dict[str, Any]:
        pass

    @abstractmethod
    async def execute(self, **kwargs: Any) -> str:
        pass

    def validate_params(self, params: dict[str, Any]) -> list[str]:
        """Return human-readable problems with ``params``; empty when valid."""
        schema = self.parameters or {}
        if schema.get("type", "object") != "object":
            raise ValueError(f"{self.name}: parameter schema must be an object, got {schema.get('type')!r}")
        return self._validate(params, {**schema, "type": "object"}, "")

    def _validate(self, value: Any, schema: dict[str, Any], path: str) -> list[str]:
        label = path or "parameter"
        expected = schema.get("type")

        if expected is not None and not self._is_type(value, expected):
            return [f"{label} should be {expected}"]

        errors: list[str] = []
        if expected in ("integer", "number"):
            if "minimum" in schema and value < schema["minimum"]:
                errors.append(f"{label} must be >= {schema['minimum']}")
            if "maximum" in schema and value > schema["maximum"]:
                errors.append(f"{label} must be <= {schema['maximum']}")
        elif expected == "string":
            if "minLength" in schema and len(value) < schema["minLength"]:
                errors.append(f"{label} must be at least {schema['minLength']} chars")
        elif expected == "object":
            errors.extend(self._validate_object(value, schema, path))

        if "anyOf" in schema and all(self._validate(value, option, path) for option in schema["anyOf"]):
            errors.append(f"{label} must be one of: {', '.join(o.get('type', '?') for o in schema['anyOf'])}")
        return errors

    def _validate_object(self, value: dict[str, Any], schema: dict[str, Any], path: str) -> list[str]:
        properties = schema.get("properties", {})
        required = schema.get("required", [])
        extra = schema.get("additionalProperties")

        errors = [
            f"missing required {path + '.' + key if path else key}"
            for key in required
            if key not in value
        ]
        for key, item in value.items():
            # optional parameters may be passed explicitly as null
            if item is None and key not in required:
                continue
            item_path = f"{path}.{key}" if path else key
            if key in properties:
                errors.extend(self._validate(item, properties[key], item_path))
            elif isinstance(extra, dict):
                errors.extend(self._validate(item, extra, item_path))
        return errors

    def _is_type(self, value: Any, expected: str) -> bool:
        if expected not in self._TYPE_MAP:
            return True
        if expected in ("integer", "number") and isinstance(value, bool):
            return False
        return isinstance(value, self._TYPE_MAP[expected])

    def to_schema(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


class ToolRegistry:
    """Named tools, validated before they run."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        if tool.name in self._tools:
            logger.warning(f"Replacing registered tool '{tool.name}'")
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools)

    def get_definitions(self) -> list[dict[str, Any]]:
        return [tool.to_schema() for tool in self._tools.values()]

    async def execute(self, name: str, params: dict[str, Any]) -> str:
        """
        Validate ``params`` and run the named tool.

        Never raises: unknown tools, invalid parameters and unexpected
        failures come back as ``Error: ...`` strings.
        """
        tool = self._tools.get(name)
        if tool is None:
            return f"Error: Tool '{name}' not found"

        errors = tool.validate_params(params)
        if errors:
            return f"Error: Invalid parameters for tool '{name}': " + "; ".join(errors)

        try:
            return await tool.execute(**params)
        except Exception as exc:  # pragma: no cover - runtime safeguard
            logger.error(f"Tool {name} failed: {format_error(exc)}")
            return f"Error executing {name}: {exc}"
