"""Tool-use orchestration loop: message model, stream folding, loop guard and controller."""

from .controller import AgentController, AgentState, ConcurrentStreamError
from .loop_guard import DOOM_LOOP_THRESHOLD, LoopGuard, canonical_arguments
from .message_builder import build_request_messages
from .stream_accumulator import PARSE_ERROR_FIELD, StreamAccumulator
from .types import (
    AgentEvent,
    EventKind,
    FinishReason,
    Message,
    MessageRole,
    ToolCall,
    create_message,
)

__all__ = [
    "AgentController",
    "AgentState",
    "ConcurrentStreamError",
    "LoopGuard",
    "DOOM_LOOP_THRESHOLD",
    "canonical_arguments",
    "build_request_messages",
    "StreamAccumulator",
    "PARSE_ERROR_FIELD",
    "AgentEvent",
    "EventKind",
    "FinishReason",
    "Message",
    "MessageRole",
    "ToolCall",
    "create_message",
]
