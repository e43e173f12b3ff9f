"""Tests for orchestration/tools/executor.py."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Mapping

import pytest

from pdf_retriever.ai.orchestration.tools import (
    DEFAULT_TOOL_TIMEOUT,
    CANCELLED_ERROR_MESSAGE,
    TIMEOUT_ERROR_MESSAGE,
    ExecutorConfig,
    SimpleTool,
    ToolExecutor,
    ToolRegistry,
    ToolSpec,
)
from pdf_retriever.ai.orchestration.types import ToolCall


# -----------------------------------------------------------------------------
# Test Fixtures and Helpers
# -----------------------------------------------------------------------------


def make_spec(name: str = "test_tool", description: str = "A test tool") -> ToolSpec:
    """Helper to create a ToolSpec."""
    return ToolSpec(name=name, description=description)


class _SlowTool:
    """Tool that sleeps and records whether it was cancelled."""

    name = "slow"
    spec = ToolSpec(name="slow", description="Slow tool")

    def __init__(self, delay: float = 5.0) -> None:
        self.delay = delay
        self.started = asyncio.Event()
        self.cancelled = False

    async def execute(self, arguments: Mapping[str, Any]) -> str:
        self.started.set()
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return "finished"


def make_registry_with_tools(*extra: Any) -> ToolRegistry:
    """Create a registry with some test tools."""

    # Async tool
    async def async_greet(args: Mapping[str, Any]) -> dict:
        return {"greeting": f"Hello, {args.get('name', 'World')}!"}

    # Tool that raises
    def failing_tool(args: Mapping[str, Any]) -> None:
        raise ValueError("Intentional failure")

    def raises_timeout(args: Mapping[str, Any]) -> None:
        raise TimeoutError("upstream timed out")

    return ToolRegistry(
        [
            SimpleTool(spec=make_spec("echo", "Echo the input"), handler=lambda args: args.get("message", "")),
            SimpleTool(spec=make_spec("greet", "Greet someone"), handler=async_greet),
            SimpleTool(spec=make_spec("fail", "Always fails"), handler=failing_tool),
            SimpleTool(spec=make_spec("upstream", "Raises TimeoutError"), handler=raises_timeout),
            *extra,
        ]
    )


def call(name: str, /, **arguments: Any) -> ToolCall:
    return ToolCall(id=f"call_{name}", name=name, arguments=arguments)


# -----------------------------------------------------------------------------
# Tests: ExecutorConfig
# -----------------------------------------------------------------------------


class TestExecutorConfig:
    """Tests for ExecutorConfig."""

    def test_defaults(self) -> None:
        config = ExecutorConfig()

        assert config.default_timeout == DEFAULT_TOOL_TIMEOUT == 30.0
        assert config.log_arguments is False
        assert config.log_results is False


# -----------------------------------------------------------------------------
# Tests: Successful execution
# -----------------------------------------------------------------------------


class TestToolExecutorSuccess:
    """Tests for the happy path."""

    @pytest.mark.asyncio
    async def test_string_result_passes_through(self) -> None:
        executor = ToolExecutor(make_registry_with_tools())

        assert await executor.execute(call("echo", message="hi")) == "hi"

    @pytest.mark.asyncio
    async def test_non_string_result_is_serialized(self) -> None:
        executor = ToolExecutor(make_registry_with_tools())

        result = await executor.execute(call("greet", name="Ada"))

        assert json.loads(result) == {"greeting": "Hello, Ada!"}

    @pytest.mark.asyncio
    async def test_logging_flags_do_not_change_result(self) -> None:
        executor = ToolExecutor(
            make_registry_with_tools(),
            ExecutorConfig(log_arguments=True, log_results=True),
        )

        assert await executor.execute(call("echo", message="hi")) == "hi"


# -----------------------------------------------------------------------------
# Tests: Failures become structured results
# -----------------------------------------------------------------------------


class TestToolExecutorFailures:
    """Tool-level failures never raise."""

    @pytest.mark.asyncio
    async def test_unknown_tool(self) -> None:
        executor = ToolExecutor(make_registry_with_tools())

        result = json.loads(await executor.execute(call("missing")))

        assert result == {"error": "Unknown tool: missing", "tool": "missing"}

    @pytest.mark.asyncio
    async def test_exception_message_is_reported(self) -> None:
        executor = ToolExecutor(make_registry_with_tools())

        result = json.loads(await executor.execute(call("fail")))

        assert result == {"error": "Intentional failure", "tool": "fail"}

    @pytest.mark.asyncio
    async def test_tool_raising_timeout_error_is_a_failure_not_a_deadline(self) -> None:
        executor = ToolExecutor(make_registry_with_tools())

        result = json.loads(await executor.execute(call("upstream")))

        assert result == {"error": "upstream timed out", "tool": "upstream"}

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        slow = _SlowTool()
        executor = ToolExecutor(make_registry_with_tools(slow), ExecutorConfig(default_timeout=0.05))

        result = json.loads(await executor.execute(call("slow")))

        assert result == {"error": TIMEOUT_ERROR_MESSAGE, "tool": "slow"}

    @pytest.mark.asyncio
    async def test_timeout_requests_cancellation_without_waiting(self) -> None:
        slow = _SlowTool()
        executor = ToolExecutor(make_registry_with_tools(slow))

        loop = asyncio.get_running_loop()
        started = loop.time()
        await executor.execute(call("slow"), timeout=0.05)
        elapsed = loop.time() - started
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert elapsed < 1.0
        assert slow.cancelled is True

    @pytest.mark.asyncio
    async def test_per_call_timeout_overrides_config(self) -> None:
        slow = _SlowTool(delay=0.01)
        executor = ToolExecutor(make_registry_with_tools(slow), ExecutorConfig(default_timeout=0.001))

        assert await executor.execute(call("slow"), timeout=5.0) == "finished"

    @pytest.mark.asyncio
    async def test_non_positive_timeout_disables_deadline(self) -> None:
        slow = _SlowTool(delay=0.01)
        executor = ToolExecutor(make_registry_with_tools(slow), ExecutorConfig(default_timeout=0))

        assert await executor.execute(call("slow")) == "finished"

    @pytest.mark.asyncio
    async def test_caller_cancellation_propagates_to_tool(self) -> None:
        slow = _SlowTool()
        executor = ToolExecutor(make_registry_with_tools(slow))

        task = asyncio.create_task(executor.execute(call("slow")))
        await slow.started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        await asyncio.sleep(0)

        assert slow.cancelled is True

    @pytest.mark.asyncio
    async def test_tool_raising_cancelled_error_is_a_failure(self) -> None:
        async def cancels_itself(args: Mapping[str, Any]) -> None:
            raise asyncio.CancelledError()

        tool = SimpleTool(spec=make_spec("quitter", "Cancels itself"), handler=cancels_itself)
        executor = ToolExecutor(make_registry_with_tools(tool))

        result = json.loads(await executor.execute(call("quitter")))

        assert result == {"error": CANCELLED_ERROR_MESSAGE, "tool": "quitter"}
        # The executor stays usable for the next call.
        assert await executor.execute(call("echo", message="still here")) == "still here"


class TestResultHelpers:
    """Tests for the static helpers."""

    def test_error_result_shape(self) -> None:
        assert json.loads(ToolExecutor.error_result("t", "bad")) == {"error": "bad", "tool": "t"}

    def test_serialize_falls_back_to_str(self) -> None:
        class Opaque:
            def __str__(self) -> str:
                return "opaque"

        assert ToolExecutor.serialize_result({"value": Opaque()}) == '{"value": "opaque"}'
