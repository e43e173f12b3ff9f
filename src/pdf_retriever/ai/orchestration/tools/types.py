"""Tool capability types consumed by the orchestration loop.

Capabilities are supplied by the caller when the controller is built. The
controller only relies on the :class:`Tool` protocol: a name, a
:class:`ToolSpec` describing the parameters, and an async ``execute``.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, Coroutine, Mapping, Protocol, runtime_checkable

__all__ = [
    "ToolSpec",
    "ToolHandler",
    "AsyncToolHandler",
    "Tool",
    "SimpleTool",
]


# -----------------------------------------------------------------------------
# Tool Specification
# -----------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class ToolSpec:
    """Specification for a tool's interface.

    Attributes:
        name: Unique identifier for the tool within a registry.
        description: Human-readable description shown to the model.
        parameters: JSON Schema object describing the named parameters and
            which of them are required.
    """

    name: str
    description: str
    parameters: Mapping[str, Any] = field(default_factory=dict)

    def to_openai_tool(self) -> dict[str, Any]:
        """Convert to OpenAI tool definition format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": dict(self.parameters) if self.parameters else {
                    "type": "object",
                    "properties": {},
                },
            },
        }

    @property
    def required(self) -> tuple[str, ...]:
        """Names of the parameters the schema marks as required."""
        return tuple(self.parameters.get("required", ()) if self.parameters else ())


# -----------------------------------------------------------------------------
# Tool Handler Types
# -----------------------------------------------------------------------------

# Synchronous tool handler
ToolHandler = Callable[[Mapping[str, Any]], Any]

# Asynchronous tool handler
AsyncToolHandler = Callable[[Mapping[str, Any]], Coroutine[Any, Any, Any]]


# -----------------------------------------------------------------------------
# Tool Protocol
# -----------------------------------------------------------------------------


@runtime_checkable
class Tool(Protocol):
    """Protocol for tool implementations.

    ``execute`` may be invoked repeatedly and must not assume exclusive
    access to shared resources it does not encapsulate itself.
    """

    @property
    def name(self) -> str:
        """Get the tool's unique name."""
        ...

    @property
    def spec(self) -> ToolSpec:
        """Get the tool's specification."""
        ...

    async def execute(self, arguments: Mapping[str, Any]) -> str:
        """Execute the tool with the given arguments.

        Args:
            arguments: Tool arguments as a mapping.

        Returns:
            The tool's result, usually a serialized JSON document.

        Raises:
            Exception: If tool execution fails.
        """
        ...


# -----------------------------------------------------------------------------
# Simple Tool Implementation
# -----------------------------------------------------------------------------


@dataclass
class SimpleTool:
    """Tool implementation wrapping a plain callable.

    Example:
        def greet(args: Mapping[str, Any]) -> str:
            return f"Hello, {args.get('name', 'World')}!"

        tool = SimpleTool(
            spec=ToolSpec(name="greet", description="Greet someone"),
            handler=greet,
        )
    """

    spec: ToolSpec
    handler: ToolHandler | AsyncToolHandler
    _is_async: bool = field(init=False, default=False)

    def __post_init__(self) -> None:
        self._is_async = inspect.iscoroutinefunction(self.handler)

    @property
    def name(self) -> str:
        return self.spec.name

    async def execute(self, arguments: Mapping[str, Any]) -> Any:
        if self._is_async:
            return await self.handler(arguments)  # type: ignore[misc]
        return self.handler(arguments)
