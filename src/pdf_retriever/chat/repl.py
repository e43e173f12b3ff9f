"""Terminal chat loop driving :class:`AgentController`."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Callable, List, TextIO

import httpx
from openai import OpenAIError

from ..ai.orchestration.controller import AgentController, ConcurrentStreamError
from ..ai.orchestration.types import EventKind, FinishReason, Message, MessageRole, create_message
from .commands import COMMAND_HELP, ReplCommandType, parse_repl_command

__all__ = ["ChatRepl"]

LOGGER = logging.getLogger(__name__)

InputFunc = Callable[[str], str]


class ChatRepl:
    """Read user questions, stream answers and keep the conversation history."""

    def __init__(
        self,
        controller: AgentController,
        *,
        input_func: InputFunc = input,
        output: TextIO | None = None,
    ) -> None:
        self._controller = controller
        self._input = input_func
        self._output = output or sys.stdout
        self._history: List[Message] = []

    @property
    def history(self) -> list[Message]:
        return list(self._history)

    async def run(self) -> None:
        self._write(f"PDF Retriever Agent ready. Commands: {COMMAND_HELP}\n\n")
        while True:
            try:
                line = await asyncio.to_thread(self._input, "You: ")
            except (EOFError, KeyboardInterrupt):
                self._write("\nGoodbye!\n")
                return
            if not await self.handle_line(line):
                return

    async def handle_line(self, line: str) -> bool:
        """Process one line of input. Returns ``False`` when the REPL should stop."""

        text = (line or "").strip()
        if not text:
            return True
        try:
            command = parse_repl_command(text)
        except ValueError as exc:
            self._write(f"{exc}\n\n")
            return True
        if command is None:
            await self.ask(text)
            return True
        if command.command is ReplCommandType.QUIT:
            self._write("Goodbye!\n")
            return False
        if command.command is ReplCommandType.DEBUG:
            self._dump_history()
        elif command.command is ReplCommandType.CLEAR:
            self._history.clear()
            self._write("Chat history cleared.\n\n")
        return True

    async def ask(self, question: str) -> None:
        model = self._controller.get_model()
        self._history.append(create_message(MessageRole.USER, question, model=model))
        self._write("Agent: ")

        answer: list[str] = []
        try:
            async for event in self._controller.stream_response(self._history):
                if event.kind is EventKind.TEXT:
                    self._write(event.content)
                    answer.append(event.content)
                    continue
                # Text streamed before a tool call already lives on the tool-call message.
                answer.clear()
                if event.kind is EventKind.TOOL_CALL:
                    self._write(f"\n{event.content}")
                else:
                    self._write(f"{event.content}\n")
                if event.message is not None:
                    self._history.append(event.message)
        except (OpenAIError, httpx.HTTPError, ConcurrentStreamError) as exc:
            self._record_error(exc, model)
            return
        except Exception:
            LOGGER.exception("Unexpected failure while answering %r", question)
            raise

        content = "".join(answer)
        if content:
            self._history.append(
                create_message(
                    MessageRole.ASSISTANT,
                    content,
                    model=model,
                    finish_reason=FinishReason.STOP,
                )
            )
        self._write("\n\n")

    def _record_error(self, exc: Exception, model: str) -> None:
        message = str(exc) or type(exc).__name__
        LOGGER.error("Completion request failed: %s", message)
        self._write(f"\nError: {message}\n\n")
        self._history.append(create_message(MessageRole.ASSISTANT, "", error=message, model=model))

    def _dump_history(self) -> None:
        self._write("\n=== Chat History Debug ===\n")
        if not self._history:
            self._write("(empty)\n")
        for message in self._history:
            self._write(json.dumps(message.to_dict(), indent=2, ensure_ascii=False))
            self._write("\n---\n")
        self._write("\n")

    def _write(self, text: str) -> None:
        self._output.write(text)
        self._output.flush()
