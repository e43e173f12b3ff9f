"""Name-keyed registry of tool capabilities.

The registry is built once from the capability list handed to the
controller and is not mutated afterwards.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Iterator, Mapping

from jsonschema import Draft7Validator
from jsonschema.exceptions import SchemaError

from .types import Tool, ToolSpec

__all__ = [
    "ToolRegistry",
    "DuplicateToolError",
    "InvalidToolSchemaError",
]

LOGGER = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Exceptions
# -----------------------------------------------------------------------------


class DuplicateToolError(Exception):
    """Raised when two capabilities share a name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool '{name}' is already registered")


class InvalidToolSchemaError(Exception):
    """Raised when a capability declares a parameter schema that is not valid JSON Schema."""

    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        self.reason = reason
        super().__init__(f"Tool '{name}' has an invalid parameter schema: {reason}")


# -----------------------------------------------------------------------------
# Tool Registry
# -----------------------------------------------------------------------------


class ToolRegistry:
    """Fixed mapping from tool name to capability.

    Example:
        registry = ToolRegistry([search_tool, fetch_tool])
        tool = registry.get("search_sections")
        schemas = registry.openai_tools()
    """

    def __init__(self, tools: Iterable[Tool] = ()) -> None:
        registered: dict[str, Tool] = {}
        for tool in tools:
            name = tool.name
            if name in registered:
                raise DuplicateToolError(name)
            self._check_schema(tool.spec)
            registered[name] = tool
            LOGGER.debug("Registered tool: %s", name)
        self._tools: Mapping[str, Tool] = registered

    def get(self, name: str) -> Tool | None:
        """Return the capability registered under ``name`` or ``None``."""
        return self._tools.get(name)

    def has(self, name: str) -> bool:
        return name in self._tools

    def list_names(self) -> list[str]:
        return list(self._tools)

    def specs(self) -> list[ToolSpec]:
        return [tool.spec for tool in self._tools.values()]

    def openai_tools(self) -> list[dict[str, Any]] | None:
        """Return function-tool schemas for the completion request, or ``None`` when empty."""
        if not self._tools:
            return None
        return [spec.to_openai_tool() for spec in self.specs()]

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools.values())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    @staticmethod
    def _check_schema(spec: ToolSpec) -> None:
        if not spec.parameters:
            return
        try:
            Draft7Validator.check_schema(dict(spec.parameters))
        except SchemaError as exc:
            raise InvalidToolSchemaError(spec.name, exc.message) from exc
