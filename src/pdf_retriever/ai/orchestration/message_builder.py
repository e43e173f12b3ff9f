"""Convert conversation history into completion request messages."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterable, List, Sequence

from openai.types.chat import ChatCompletionMessageParam

from .types import Message, MessageRole, ToolCall

__all__ = [
    "build_request_messages",
    "message_to_param",
    "serialize_tool_call",
    "UNEXECUTED_TOOL_CALL_ERROR",
]

LOGGER = logging.getLogger(__name__)

UNEXECUTED_TOOL_CALL_ERROR = "Tool call was not executed"


def serialize_tool_call(call: ToolCall) -> Dict[str, Any]:
    return {
        "id": call.id,
        "type": "function",
        "function": {
            "name": call.name,
            "arguments": json.dumps(dict(call.arguments), ensure_ascii=False),
        },
    }


def message_to_param(message: Message) -> Dict[str, Any]:
    """Return the wire representation of a single history message."""

    if message.role is MessageRole.TOOL:
        return {
            "role": "tool",
            "tool_call_id": message.tool_call_id,
            "content": message.content,
        }
    if message.role is MessageRole.ASSISTANT and message.tool_calls:
        return {
            "role": "assistant",
            "content": message.content or None,
            "tool_calls": [serialize_tool_call(call) for call in message.tool_calls],
        }
    return {"role": message.role.value, "content": message.content}


def build_request_messages(
    system_prompt: str,
    history: Sequence[Message],
    *,
    extra: Iterable[Dict[str, Any]] = (),
) -> List[ChatCompletionMessageParam]:
    """Build the request message list: system instruction first, then history.

    Messages recording a failed turn are skipped. Assistant tool calls that
    never received a tool message get a synthetic error result so the request
    stays consistent; ``history`` itself is not modified.
    """

    answered = {
        message.tool_call_id
        for message in history
        if message.role is MessageRole.TOOL and message.error is None
    }
    messages: List[Dict[str, Any]] = [{"role": "system", "content": system_prompt}]
    for message in history:
        if message.error is not None:
            continue
        messages.append(message_to_param(message))
        if message.role is not MessageRole.ASSISTANT:
            continue
        for call in message.tool_calls:
            if call.id in answered:
                continue
            LOGGER.debug("Filling unanswered tool call %s (%s)", call.id, call.name)
            messages.append(
                {
                    "role": "tool",
                    "tool_call_id": call.id,
                    "content": json.dumps({"error": UNEXECUTED_TOOL_CALL_ERROR, "tool": call.name}),
                }
            )
    messages.extend(extra)
    return messages  # type: ignore[return-value]
