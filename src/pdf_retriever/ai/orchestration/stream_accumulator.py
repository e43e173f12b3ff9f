"""Fold one turn's streamed deltas into text and finalized tool calls."""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from typing import Any

from ..client import AIStreamEvent, ToolCallDelta
from .types import FinishReason, ToolCall

__all__ = ["StreamAccumulator", "PARSE_ERROR_FIELD"]

LOGGER = logging.getLogger(__name__)

# Argument key substituted when the concatenated argument text is not a JSON object.
PARSE_ERROR_FIELD = "_parse_error"


@dataclass(slots=True)
class _ToolCallBuffer:
    id: str = ""
    name: str = ""
    arguments: str = ""

    def merge(self, fragment: ToolCallDelta) -> None:
        if fragment.id and not self.id:
            self.id = fragment.id
        if fragment.name and not self.name:
            self.name = fragment.name
        if fragment.arguments:
            self.arguments += fragment.arguments


class StreamAccumulator:
    """Accumulates one completion turn.

    Text fragments are concatenated in arrival order. Tool-call fragments are
    merged per position index: the first non-empty id and name win, argument
    fragments are concatenated. Arguments are parsed only when the turn is
    finalized, never per fragment.
    """

    def __init__(self) -> None:
        self._text_parts: list[str] = []
        self._buffers: dict[int, _ToolCallBuffer] = {}
        self._finish_reason: str | None = None

    def feed(self, event: AIStreamEvent) -> str | None:
        """Fold ``event`` in and return its text fragment, if any."""
        for fragment in event.tool_calls:
            self._buffers.setdefault(fragment.index, _ToolCallBuffer()).merge(fragment)
        if event.finish_reason:
            self._finish_reason = event.finish_reason
        if event.content:
            self._text_parts.append(event.content)
            return event.content
        return None

    @property
    def content(self) -> str:
        return "".join(self._text_parts)

    @property
    def finish_reason(self) -> str | None:
        """Raw finish signal of the turn, ``None`` when the stream ended without one."""
        return self._finish_reason

    @property
    def parsed_finish_reason(self) -> FinishReason | None:
        return FinishReason.parse(self._finish_reason)

    @property
    def pending_tool_calls(self) -> int:
        return len(self._buffers)

    def finalize_tool_calls(self) -> list[ToolCall]:
        """Drain the buffers in position-index order into :class:`ToolCall` values.

        A call that never received an id gets a generated ``call_`` id so its
        tool result can still be linked back to it.
        """
        calls: list[ToolCall] = []
        for index in sorted(self._buffers):
            buffer = self._buffers[index]
            if not buffer.id:
                buffer.id = f"call_{uuid.uuid4().hex[:24]}"
                LOGGER.debug("Tool call at index %s arrived without an id; assigned %s", index, buffer.id)
            calls.append(
                ToolCall(
                    id=buffer.id,
                    name=buffer.name,
                    arguments=self._parse_arguments(buffer),
                )
            )
        self._buffers.clear()
        return calls

    @staticmethod
    def _parse_arguments(buffer: _ToolCallBuffer) -> dict[str, Any]:
        raw = buffer.arguments
        if not raw.strip():
            return {}
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, dict):
            return parsed
        LOGGER.debug("Arguments for tool %s are not a JSON object: %r", buffer.name, raw)
        return {PARSE_ERROR_FIELD: raw}
