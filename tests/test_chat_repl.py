"""Tests for the terminal chat front-end."""

from __future__ import annotations

import io
import json
import logging
from typing import Any, Iterable, cast

import httpx
import pytest

from pdf_retriever.ai.client import AIClient
from pdf_retriever.ai.orchestration import AgentController, ConcurrentStreamError, FinishReason, MessageRole
from pdf_retriever.ai.tools import default_tools
from pdf_retriever.chat import ChatRepl, ReplCommandType, parse_repl_command
from pdf_retriever.documents import SemanticTree

from tests.helpers import StubClient, text_event, tool_event, finish_event, tool_turn


def _scripted_input(lines: Iterable[str]):
    pending = list(lines)

    def _input(prompt: str) -> str:
        if not pending:
            raise EOFError
        return pending.pop(0)

    return _input


def _repl(client: StubClient, *tools: Any, lines: Iterable[str] = ()) -> tuple[ChatRepl, io.StringIO]:
    output = io.StringIO()
    controller = AgentController(cast(AIClient, client), tools=tools)
    return ChatRepl(controller, input_func=_scripted_input(lines), output=output), output


class TestParseReplCommand:
    """Slash command parsing."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("/quit", ReplCommandType.QUIT),
            ("  /exit ", ReplCommandType.QUIT),
            ("/DEBUG", ReplCommandType.DEBUG),
            ("/clear", ReplCommandType.CLEAR),
        ],
    )
    def test_known_commands(self, text: str, expected: ReplCommandType) -> None:
        command = parse_repl_command(text)

        assert command is not None
        assert command.command is expected

    def test_plain_text_is_not_a_command(self) -> None:
        assert parse_repl_command("What is section 4.7?") is None

    @pytest.mark.parametrize("text", ["/", "/summon"])
    def test_invalid_commands(self, text: str) -> None:
        with pytest.raises(ValueError):
            parse_repl_command(text)


class TestChatRepl:
    """History bookkeeping and output."""

    @pytest.mark.asyncio
    async def test_plain_answer_is_recorded(self) -> None:
        client = StubClient([[text_event("Hi "), text_event("there.", finish_reason="stop")]])
        repl, output = _repl(client)

        await repl.ask("hello")

        history = repl.history
        assert [message.role for message in history] == [MessageRole.USER, MessageRole.ASSISTANT]
        assert history[1].content == "Hi there."
        assert history[1].finish_reason is FinishReason.STOP
        assert history[1].model == "test-model"
        assert "Agent: Hi there." in output.getvalue()

    @pytest.mark.asyncio
    async def test_tool_events_are_appended_and_pre_tool_text_dropped(self, semantic_tree: SemanticTree) -> None:
        client = StubClient(
            [
                [
                    text_event("Let me look. "),
                    tool_event(0, call_id="call_1", name="search_sections", arguments='{"section_number": "4.7"}'),
                    finish_event("tool_calls"),
                ],
                [text_event("It covers termination.", finish_reason="stop")],
            ]
        )
        repl, output = _repl(client, *default_tools(semantic_tree))

        await repl.ask("What is section 4.7 about?")

        roles = [message.role for message in repl.history]
        assert roles == [MessageRole.USER, MessageRole.ASSISTANT, MessageRole.TOOL, MessageRole.ASSISTANT]
        assert repl.history[1].content == "Let me look. "
        assert repl.history[1].tool_calls[0].name == "search_sections"
        assert repl.history[-1].content == "It covers termination."
        text = output.getvalue()
        assert "[Calling search_sections...]" in text
        assert "[search_sections result received]" in text

    @pytest.mark.asyncio
    async def test_service_error_is_recorded_and_repl_continues(self) -> None:
        client = StubClient(
            [
                [httpx.ConnectError("connection refused")],
                [text_event("Recovered.", finish_reason="stop")],
            ]
        )
        repl, output = _repl(client)

        await repl.ask("first")
        await repl.ask("second")

        history = repl.history
        assert history[1].role is MessageRole.ASSISTANT
        assert history[1].content == ""
        assert history[1].error == "connection refused"
        assert history[-1].content == "Recovered."
        assert "Error: connection refused" in output.getvalue()
        # The failed turn is not sent back to the model.
        second_request = client.calls[1]["messages"]
        assert [message["role"] for message in second_request] == ["system", "user", "user"]

    @pytest.mark.asyncio
    async def test_no_answer_text_records_nothing(self) -> None:
        client = StubClient([[finish_event("stop")]])
        repl, _ = _repl(client)

        await repl.ask("anything?")

        assert [message.role for message in repl.history] == [MessageRole.USER]

    @pytest.mark.asyncio
    async def test_debug_dumps_history_with_decoded_tool_content(self, semantic_tree: SemanticTree) -> None:
        client = StubClient(
            [
                tool_turn("call_1", "search_sections", '{"section_number": "1"}'),
                [text_event("Definitions.", finish_reason="stop")],
            ]
        )
        repl, output = _repl(client, *default_tools(semantic_tree))
        await repl.ask("section 1?")
        output.truncate(0)
        output.seek(0)

        assert await repl.handle_line("/debug") is True

        dump = output.getvalue()
        assert "=== Chat History Debug ===" in dump
        blocks = [block.strip() for block in dump.split("---") if block.strip().startswith("{")]
        tool_block = next(json.loads(block) for block in blocks if '"tool_call_id"' in block)
        assert tool_block["content"]["found"] is True

    @pytest.mark.asyncio
    async def test_debug_with_empty_history(self) -> None:
        repl, output = _repl(StubClient([]))

        await repl.handle_line("/debug")

        assert "(empty)" in output.getvalue()

    @pytest.mark.asyncio
    async def test_clear_resets_history(self) -> None:
        client = StubClient([[text_event("ok", finish_reason="stop")]])
        repl, output = _repl(client)
        await repl.ask("hello")

        await repl.handle_line("/clear")

        assert repl.history == []
        assert "Chat history cleared." in output.getvalue()

    @pytest.mark.asyncio
    async def test_blank_and_unknown_lines(self) -> None:
        client = StubClient([])
        repl, output = _repl(client)

        assert await repl.handle_line("   ") is True
        assert await repl.handle_line("/summon") is True

        assert client.calls == []
        assert "Unknown command '/summon'" in output.getvalue()

    @pytest.mark.asyncio
    async def test_run_until_quit(self) -> None:
        client = StubClient([[text_event("Answer.", finish_reason="stop")]])
        repl, output = _repl(client, lines=["", "question", "/quit", "never read"])

        await repl.run()

        text = output.getvalue()
        assert text.startswith("PDF Retriever Agent ready.")
        assert text.rstrip().endswith("Goodbye!")
        assert len(client.calls) == 1

    @pytest.mark.asyncio
    async def test_run_stops_on_end_of_input(self) -> None:
        repl, output = _repl(StubClient([]), lines=[])

        await repl.run()

        assert "Goodbye!" in output.getvalue()


class _FailingController:
    """Controller stand-in whose runs fail before producing events."""

    def __init__(self, exc: Exception) -> None:
        self.exc = exc

    def get_model(self) -> str:
        return "test-model"

    async def stream_response(self, history: Any):
        raise self.exc
        yield  # pragma: no cover


class TestChatReplFailures:
    """Failures raised while answering."""

    @pytest.mark.asyncio
    async def test_overlapping_run_is_recorded_as_error(self) -> None:
        output = io.StringIO()
        controller = _FailingController(ConcurrentStreamError("stream_response is already being consumed"))
        repl = ChatRepl(cast(AgentController, controller), output=output)

        await repl.ask("hello")

        assert repl.history[-1].role is MessageRole.ASSISTANT
        assert repl.history[-1].error == "stream_response is already being consumed"
        assert "Error: stream_response is already being consumed" in output.getvalue()

    @pytest.mark.asyncio
    async def test_unexpected_error_is_logged_and_raised(self, caplog: pytest.LogCaptureFixture) -> None:
        controller = _FailingController(RuntimeError("boom"))
        repl = ChatRepl(cast(AgentController, controller), output=io.StringIO())

        with caplog.at_level(logging.ERROR), pytest.raises(RuntimeError, match="boom"):
            await repl.ask("hello")

        assert any("Unexpected failure" in record.getMessage() for record in caplog.records)
