"""Shared test helpers and stub classes.

This module contains reusable test stubs that are used across multiple test files.
Import from here instead of duplicating these classes in individual test files.
"""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any, AsyncIterator, Iterable, List, Mapping, Sequence

from pdf_retriever.ai.client import AIStreamEvent, ToolCallDelta


SAMPLE_TREE: dict[str, Any] = {
    "title": "Service Agreement",
    "summary": "Terms governing the delivery of hosted services.",
    "chunks": [
        {"id": "chunk-1", "content": "1. Definitions. Terms used in this agreement.", "page": 1},
        {"id": "chunk-12", "content": "4.7 Termination. Either party may terminate with 30 days notice.", "page": 6},
        {"id": "chunk-13", "content": "Termination for cause takes effect immediately.", "page": 6},
        {"id": "chunk-40", "content": "15.2 Governing Law. This agreement is governed by Delaware law.", "page": 19},
    ],
    "headings": [
        {"heading": "1. Definitions", "level": 1, "chunkIds": ["chunk-1"]},
        {"heading": "4.7 Termination", "level": 2, "chunkIds": ["chunk-12", "chunk-13"]},
        {"heading": "15.2 Governing Law", "level": 2, "chunkIds": ["chunk-40"]},
    ],
    "sections": [
        {"section": "1", "chunkIds": ["chunk-1"]},
        {"section": "4.7", "chunkIds": ["chunk-12", "chunk-13"]},
        {"section": "15.2", "chunkIds": ["chunk-40"]},
    ],
}


def text_event(content: str, finish_reason: str | None = None) -> AIStreamEvent:
    return AIStreamEvent(content=content, finish_reason=finish_reason)


def finish_event(finish_reason: str) -> AIStreamEvent:
    return AIStreamEvent(finish_reason=finish_reason)


def tool_event(
    index: int,
    *,
    call_id: str | None = None,
    name: str | None = None,
    arguments: str | None = None,
    finish_reason: str | None = None,
) -> AIStreamEvent:
    return AIStreamEvent(
        tool_calls=(ToolCallDelta(index=index, id=call_id, name=name, arguments=arguments),),
        finish_reason=finish_reason,
    )


def tool_turn(call_id: str, name: str, arguments: str) -> list[AIStreamEvent]:
    """A complete turn requesting a single tool call."""
    return [
        tool_event(0, call_id=call_id, name=name, arguments=arguments),
        finish_event("tool_calls"),
    ]


class StubClient:
    """Completion client stub replaying scripted turns.

    Each ``stream_chat`` call consumes the next batch of events; the last
    batch is repeated once the script runs out. Raising entries are raised
    mid-stream.
    """

    def __init__(self, batches: Iterable[Sequence[AIStreamEvent | BaseException]], *, model: str = "test-model"):
        self._batches: List[List[AIStreamEvent | BaseException]] = [list(batch) for batch in batches]
        if not self._batches:
            self._batches = [[]]
        self.calls: list[dict[str, Any]] = []
        self.closed = False
        self.settings: Any = SimpleNamespace(model=model, debug_logging=False)

    async def stream_chat(self, messages: Sequence[Mapping[str, Any]], **kwargs: Any) -> AsyncIterator[AIStreamEvent]:
        self.calls.append({"messages": list(messages), **kwargs})
        batch_index = min(len(self.calls) - 1, len(self._batches) - 1)
        for event in self._batches[batch_index]:
            if isinstance(event, BaseException):
                raise event
            yield event

    async def aclose(self) -> None:
        self.closed = True
