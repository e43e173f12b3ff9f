"""Tool executor for the orchestration loop.

The executor resolves a :class:`ToolCall` against the registry and runs the
capability under a deadline. Every tool-level failure (unknown name, timeout,
exception raised by the capability) is converted into a structured JSON
result string so the model can read it on its next turn.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
import time
from dataclasses import dataclass
from typing import Any

from ..types import ToolCall
from .registry import ToolRegistry

__all__ = [
    "ToolExecutor",
    "ExecutorConfig",
    "DEFAULT_TOOL_TIMEOUT",
    "TIMEOUT_ERROR_MESSAGE",
    "CANCELLED_ERROR_MESSAGE",
]

LOGGER = logging.getLogger(__name__)

DEFAULT_TOOL_TIMEOUT = 30.0
TIMEOUT_ERROR_MESSAGE = "Tool execution timeout"
CANCELLED_ERROR_MESSAGE = "Tool execution cancelled"


class _DeadlineExceeded(Exception):
    """Raised internally when a capability misses its deadline."""


class _CapabilityCancelled(Exception):
    """Raised internally when a capability cancels itself."""


# -----------------------------------------------------------------------------
# Executor Configuration
# -----------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class ExecutorConfig:
    """Configuration for the tool executor.

    Attributes:
        default_timeout: Deadline for a single tool execution in seconds.
            ``None`` or a non-positive value disables the deadline.
        log_arguments: Whether to log tool arguments (may contain sensitive data).
        log_results: Whether to log tool results.
    """

    default_timeout: float | None = DEFAULT_TOOL_TIMEOUT
    log_arguments: bool = False
    log_results: bool = False


# -----------------------------------------------------------------------------
# Tool Executor
# -----------------------------------------------------------------------------


class ToolExecutor:
    """Runs tool calls against a registry, one at a time.

    Example:
        executor = ToolExecutor(ToolRegistry([my_tool]))
        result = await executor.execute(ToolCall(id="call_1", name="my_tool", arguments={}))
    """

    def __init__(
        self,
        registry: ToolRegistry,
        config: ExecutorConfig | None = None,
    ) -> None:
        self._registry = registry
        self._config = config or ExecutorConfig()

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def config(self) -> ExecutorConfig:
        return self._config

    async def execute(self, call: ToolCall, *, timeout: float | None = None) -> str:
        """Execute ``call`` and return its result string.

        Never raises for tool-level failures. Cancellation of the awaiting
        task is propagated to the in-flight capability.

        Args:
            call: The finalized tool call.
            timeout: Optional deadline override in seconds.

        Returns:
            The capability's result, or a JSON error document naming the tool.
        """
        if self._config.log_arguments:
            LOGGER.debug(
                "Executing tool %s (call_id=%s) with arguments: %s",
                call.name,
                call.id,
                dict(call.arguments),
            )
        else:
            LOGGER.debug("Executing tool %s (call_id=%s)", call.name, call.id)

        tool = self._registry.get(call.name)
        if tool is None:
            LOGGER.warning("Tool '%s' is not registered", call.name)
            return self.error_result(call.name, f"Unknown tool: {call.name}")

        effective_timeout = timeout if timeout is not None else self._config.default_timeout
        if effective_timeout is not None and effective_timeout <= 0:
            effective_timeout = None

        start_time = time.perf_counter()
        try:
            result = await self._run_with_deadline(tool.execute(call.arguments), effective_timeout)
        except _DeadlineExceeded:
            duration_ms = (time.perf_counter() - start_time) * 1000
            LOGGER.warning(
                "Tool %s timed out after %.1fms (timeout=%.1fs)",
                call.name,
                duration_ms,
                effective_timeout,
            )
            return self.error_result(call.name, TIMEOUT_ERROR_MESSAGE)
        except _CapabilityCancelled:
            LOGGER.warning("Tool %s cancelled itself", call.name)
            return self.error_result(call.name, CANCELLED_ERROR_MESSAGE)
        except Exception as exc:
            duration_ms = (time.perf_counter() - start_time) * 1000
            LOGGER.warning("Tool %s failed after %.1fms: %s", call.name, duration_ms, exc)
            return self.error_result(call.name, str(exc) or type(exc).__name__)

        duration_ms = (time.perf_counter() - start_time) * 1000
        serialized = self.serialize_result(result)
        if self._config.log_results:
            LOGGER.debug("Tool %s completed in %.1fms with result: %s", call.name, duration_ms, serialized)
        else:
            LOGGER.debug("Tool %s completed in %.1fms", call.name, duration_ms)
        return serialized

    @staticmethod
    def error_result(tool_name: str, message: str) -> str:
        """Return the structured error document used for every tool-level failure."""
        return json.dumps({"error": message, "tool": tool_name}, ensure_ascii=False)

    @staticmethod
    def serialize_result(result: Any) -> str:
        if isinstance(result, str):
            return result
        try:
            return json.dumps(result, ensure_ascii=False, default=str)
        except (TypeError, ValueError):
            return str(result)

    async def _run_with_deadline(self, pending: Any, timeout: float | None) -> Any:
        if not inspect.isawaitable(pending):
            return pending
        task = asyncio.ensure_future(pending)
        try:
            done, _ = await asyncio.wait({task}, timeout=timeout)
        except asyncio.CancelledError:
            task.cancel()
            raise
        if task not in done:
            # Request cancellation but do not wait for the capability to honor it.
            task.cancel()
            task.add_done_callback(_discard_abandoned_result)
            raise _DeadlineExceeded
        if task.cancelled():
            # The capability raised CancelledError itself.
            raise _CapabilityCancelled
        return task.result()


def _discard_abandoned_result(task: asyncio.Future[Any]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        LOGGER.debug("Abandoned tool task finished with error: %s", exc)
