"""Conversation value types shared by the orchestration loop.

A :class:`Message` is one turn of the conversation history, a :class:`ToolCall`
is a single invocation requested by the model, and an :class:`AgentEvent` is
the unit the controller yields to its caller.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence

__all__ = [
    "MessageRole",
    "FinishReason",
    "EventKind",
    "ToolCall",
    "Message",
    "AgentEvent",
    "create_message",
]


class MessageRole(str, Enum):
    """Roles a conversation turn can carry."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"


class FinishReason(str, Enum):
    """Finish signals recognized from the completion service."""

    STOP = "stop"
    TOOL_CALLS = "tool_calls"
    LENGTH = "length"

    @classmethod
    def parse(cls, value: str | None) -> "FinishReason | None":
        """Return the matching member or ``None`` for unrecognized values."""

        if not value:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


class EventKind(str, Enum):
    """Discriminant of :class:`AgentEvent`."""

    TEXT = "text"
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"


@dataclass(slots=True, frozen=True)
class ToolCall:
    """One invocation requested by the model."""

    id: str
    name: str
    arguments: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "arguments": dict(self.arguments)}


@dataclass(slots=True, frozen=True)
class Message:
    """A single conversation turn.

    Attributes:
        id: Unique message identifier.
        role: Who produced the turn.
        content: Text content, possibly empty.
        error: Error text recorded when the turn failed.
        model: Model identifier that produced the turn.
        finish_reason: Why the completion ended (assistant turns only).
        tool_calls: Invocations requested by an assistant turn.
        tool_call_id: Call this tool result answers (tool turns only).
    """

    id: str
    role: MessageRole
    content: str = ""
    error: Optional[str] = None
    model: Optional[str] = None
    finish_reason: Optional[FinishReason] = None
    tool_calls: tuple[ToolCall, ...] = ()
    tool_call_id: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", MessageRole(self.role))
        if self.finish_reason is not None:
            object.__setattr__(self, "finish_reason", FinishReason(self.finish_reason))
        object.__setattr__(self, "tool_calls", tuple(self.tool_calls or ()))
        if self.role is MessageRole.TOOL and not self.tool_call_id:
            raise ValueError("Tool messages require a tool_call_id")
        if self.tool_calls and self.finish_reason is not FinishReason.TOOL_CALLS:
            raise ValueError("Only messages finished with 'tool_calls' may carry tool calls")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the message for display, decoding JSON tool output when possible."""

        payload: Dict[str, Any] = {
            "id": self.id,
            "role": self.role.value,
            "content": self.content,
        }
        if self.role is MessageRole.TOOL and self.content:
            try:
                payload["content"] = json.loads(self.content)
            except json.JSONDecodeError:
                pass
        if self.error is not None:
            payload["error"] = self.error
        if self.model is not None:
            payload["model"] = self.model
        if self.finish_reason is not None:
            payload["finish_reason"] = self.finish_reason.value
        if self.tool_calls:
            payload["tool_calls"] = [call.to_dict() for call in self.tool_calls]
        if self.tool_call_id is not None:
            payload["tool_call_id"] = self.tool_call_id
        return payload


@dataclass(slots=True, frozen=True)
class AgentEvent:
    """Observable output of the controller.

    ``message`` is set for ``tool_call`` and ``tool_result`` events and holds
    the message that was just appended to the working history.
    """

    kind: EventKind
    content: str
    message: Optional[Message] = None


def create_message(
    role: MessageRole | str,
    content: str = "",
    *,
    error: str | None = None,
    model: str | None = None,
    finish_reason: FinishReason | str | None = None,
    tool_calls: Sequence[ToolCall] | None = None,
    tool_call_id: str | None = None,
) -> Message:
    """Build a :class:`Message` with a freshly generated identifier."""

    return Message(
        id=f"msg-{uuid.uuid4().hex}",
        role=MessageRole(role),
        content=content,
        error=error,
        model=model,
        finish_reason=FinishReason(finish_reason) if finish_reason is not None else None,
        tool_calls=tuple(tool_calls or ()),
        tool_call_id=tool_call_id,
    )
