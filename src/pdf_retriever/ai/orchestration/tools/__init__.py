"""Tool system for the orchestration loop.

This package provides the capability protocol, the name-keyed registry and
the executor that runs calls with a deadline.

Example:
    from pdf_retriever.ai.orchestration.tools import (
        SimpleTool,
        ToolExecutor,
        ToolRegistry,
        ToolSpec,
    )

    registry = ToolRegistry([
        SimpleTool(
            spec=ToolSpec(name="greet", description="Greet someone"),
            handler=lambda args: f"Hello, {args.get('name', 'World')}!",
        )
    ])
    executor = ToolExecutor(registry)
    result = await executor.execute(ToolCall(id="call_1", name="greet", arguments={"name": "Alice"}))
"""

from .types import (
    Tool,
    ToolSpec,
    ToolHandler,
    AsyncToolHandler,
    SimpleTool,
)

from .registry import (
    ToolRegistry,
    DuplicateToolError,
    InvalidToolSchemaError,
)

from .executor import (
    ToolExecutor,
    ExecutorConfig,
    DEFAULT_TOOL_TIMEOUT,
    CANCELLED_ERROR_MESSAGE,
    TIMEOUT_ERROR_MESSAGE,
)

__all__ = [
    # types.py
    "Tool",
    "ToolSpec",
    "ToolHandler",
    "AsyncToolHandler",
    "SimpleTool",
    # registry.py
    "ToolRegistry",
    "DuplicateToolError",
    "InvalidToolSchemaError",
    # executor.py
    "ToolExecutor",
    "ExecutorConfig",
    "DEFAULT_TOOL_TIMEOUT",
    "TIMEOUT_ERROR_MESSAGE",
    "CANCELLED_ERROR_MESSAGE",
]
