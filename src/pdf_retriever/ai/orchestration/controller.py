"""Agent controller driving the streamed tool-use loop.

One :meth:`AgentController.stream_response` call runs a small state machine:

``STREAMING``
    Request a completion for the working history and fold its deltas.
``DISPATCH``
    Execute the turn's tool calls in order, checking each with the loop guard.
``LOOP_ABORT``
    Ask once more, with tools disabled, for a final answer.
``DONE``
    Terminal.

Completion-service errors are not handled here; they propagate to the caller.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, AsyncIterator, Dict, Iterable, Sequence

from ..client import DEFAULT_MODEL, AIClient
from ..prompts import LOOP_DETECTED_NOTICE, LOOP_NUDGE_PROMPT, SYSTEM_PROMPT, TURN_LIMIT_NOTICE
from .loop_guard import DOOM_LOOP_THRESHOLD, LoopGuard
from .message_builder import build_request_messages
from .stream_accumulator import StreamAccumulator
from .tools import ExecutorConfig, Tool, ToolExecutor, ToolRegistry
from .types import AgentEvent, EventKind, FinishReason, Message, MessageRole, ToolCall, create_message

__all__ = ["AgentController", "AgentState", "ConcurrentStreamError"]

LOGGER = logging.getLogger(__name__)


class AgentState(str, Enum):
    """States of a single :meth:`AgentController.stream_response` run."""

    STREAMING = "streaming"
    DISPATCH = "dispatch"
    LOOP_ABORT = "loop_abort"
    DONE = "done"


class ConcurrentStreamError(RuntimeError):
    """Raised when a controller is iterated by more than one consumer at a time."""


class AgentController:
    """Orchestrates completion turns and tool dispatch for one conversation."""

    def __init__(
        self,
        client: AIClient,
        *,
        tools: Iterable[Tool] = (),
        model: str | None = None,
        system_prompt: str | None = None,
        executor_config: ExecutorConfig | None = None,
        max_turns: int | None = None,
        temperature: float | None = None,
        loop_threshold: int = DOOM_LOOP_THRESHOLD,
    ) -> None:
        if max_turns is not None and max_turns < 1:
            raise ValueError("max_turns must be at least 1")
        self._client = client
        settings_model = getattr(getattr(client, "settings", None), "model", None)
        self._model = model or settings_model or DEFAULT_MODEL
        self._system_prompt = system_prompt or SYSTEM_PROMPT
        self._registry = ToolRegistry(tools)
        self._executor = ToolExecutor(self._registry, executor_config)
        self._max_turns = max_turns
        self._temperature = temperature
        self._loop_threshold = loop_threshold
        self._owner: object | None = None

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def system_prompt(self) -> str:
        return self._system_prompt

    def get_model(self) -> str:
        return self._model

    async def stream_response(self, history: Sequence[Message]) -> AsyncIterator[AgentEvent]:
        """Run the tool-use loop for ``history`` and yield observable events.

        ``history`` is copied; the caller keeps ownership of its own list and
        should append the messages carried by ``tool_call``/``tool_result``
        events if it needs them later.

        The controller is only held while a run is working between events; a
        consumer that stops iterating releases it at the last event it received.

        Raises:
            ConcurrentStreamError: If another run is mid-turn when this one resumes.
        """

        owner = object()
        self._claim(owner)
        try:
            async for event in self._run(list(history)):
                self._owner = None
                yield event
                self._claim(owner)
        finally:
            if self._owner is owner:
                self._owner = None

    def _claim(self, owner: object) -> None:
        if self._owner is not None and self._owner is not owner:
            raise ConcurrentStreamError("stream_response is already being consumed")
        self._owner = owner

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _run(self, working: list[Message]) -> AsyncIterator[AgentEvent]:
        guard = LoopGuard(self._loop_threshold)
        state = AgentState.STREAMING
        pending: list[ToolCall] = []
        abort_notice = LOOP_DETECTED_NOTICE
        turns = 0

        while state is not AgentState.DONE:
            if state is AgentState.STREAMING:
                if self._max_turns is not None and turns >= self._max_turns:
                    LOGGER.warning("Turn limit of %s reached; forcing a final answer", self._max_turns)
                    abort_notice = TURN_LIMIT_NOTICE
                    state = AgentState.LOOP_ABORT
                    continue
                turns += 1
                accumulator = StreamAccumulator()
                messages = build_request_messages(self._system_prompt, working)
                LOGGER.debug("Turn %s: requesting completion with %s message(s)", turns, len(messages))
                async for event in self._stream_turn(accumulator, messages, tools=self._registry.openai_tools()):
                    yield event

                finish = accumulator.parsed_finish_reason
                LOGGER.debug("Turn %s finished with %r", turns, accumulator.finish_reason)
                if finish is FinishReason.TOOL_CALLS and accumulator.pending_tool_calls:
                    pending = accumulator.finalize_tool_calls()
                    message = self._assistant_message(accumulator.content, FinishReason.TOOL_CALLS, pending)
                    working.append(message)
                    names = ", ".join(call.name for call in pending)
                    yield AgentEvent(EventKind.TOOL_CALL, f"[Calling {names}...]", message)
                    state = AgentState.DISPATCH
                elif finish is FinishReason.STOP:
                    working.append(self._assistant_message(accumulator.content, FinishReason.STOP))
                    state = AgentState.DONE
                elif finish is FinishReason.LENGTH:
                    working.append(self._assistant_message(accumulator.content, FinishReason.LENGTH))
                else:
                    LOGGER.warning("Ending turn on unsupported finish signal %r", accumulator.finish_reason)
                    state = AgentState.DONE

            elif state is AgentState.DISPATCH:
                looping = False
                for call in pending:
                    if guard.record(call.name, call.arguments):
                        looping = True
                        break
                    result = await self._executor.execute(call)
                    message = create_message(MessageRole.TOOL, result, tool_call_id=call.id)
                    working.append(message)
                    yield AgentEvent(EventKind.TOOL_RESULT, f"[{call.name} result received]", message)
                pending = []
                state = AgentState.LOOP_ABORT if looping else AgentState.STREAMING

            elif state is AgentState.LOOP_ABORT:
                yield AgentEvent(EventKind.TEXT, abort_notice)
                messages = build_request_messages(
                    self._system_prompt,
                    working,
                    extra=[{"role": MessageRole.USER.value, "content": LOOP_NUDGE_PROMPT}],
                )
                async for event in self._stream_turn(StreamAccumulator(), messages, tools=None):
                    yield event
                state = AgentState.DONE

    async def _stream_turn(
        self,
        accumulator: StreamAccumulator,
        messages: Sequence[Dict[str, Any]],
        *,
        tools: list[dict[str, Any]] | None,
    ) -> AsyncIterator[AgentEvent]:
        request: Dict[str, Any] = {"model": self._model}
        if self._temperature is not None:
            request["temperature"] = self._temperature
        async for delta in self._client.stream_chat(messages, tools=tools, **request):
            text = accumulator.feed(delta)
            if text:
                yield AgentEvent(EventKind.TEXT, text)

    def _assistant_message(
        self,
        content: str,
        finish_reason: FinishReason,
        tool_calls: Sequence[ToolCall] | None = None,
    ) -> Message:
        return create_message(
            MessageRole.ASSISTANT,
            content,
            model=self._model,
            finish_reason=finish_reason,
            tool_calls=tool_calls,
        )
