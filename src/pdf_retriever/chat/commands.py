"""Parsing helpers for REPL slash commands."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ReplCommandType(str, Enum):
    """Commands handled locally by the REPL without calling the model."""

    QUIT = "quit"
    DEBUG = "debug"
    CLEAR = "clear"


@dataclass(slots=True)
class ReplCommand:
    """Parsed representation of a slash command string."""

    command: ReplCommandType
    raw: str


_COMMAND_PREFIX = "/"
_COMMAND_ALIASES = {
    "quit": ReplCommandType.QUIT,
    "exit": ReplCommandType.QUIT,
    "q": ReplCommandType.QUIT,
    "debug": ReplCommandType.DEBUG,
    "history": ReplCommandType.DEBUG,
    "clear": ReplCommandType.CLEAR,
    "reset": ReplCommandType.CLEAR,
}
COMMAND_HELP = "/quit, /debug, /clear"


def parse_repl_command(text: str) -> ReplCommand | None:
    """Parse ``text`` into a :class:`ReplCommand` when it starts with ``/``.

    Returns ``None`` for ordinary chat input. Raises ``ValueError`` for an
    unrecognised command so the REPL can report it instead of sending it to
    the model.
    """

    normalized = (text or "").strip()
    if not normalized.startswith(_COMMAND_PREFIX):
        return None
    remainder = normalized[len(_COMMAND_PREFIX) :].strip()
    if not remainder:
        raise ValueError(f"Command is missing a verb. Try {COMMAND_HELP}.")
    verb = remainder.split()[0].lower()
    command = _COMMAND_ALIASES.get(verb)
    if command is None:
        raise ValueError(f"Unknown command '/{verb}'. Try {COMMAND_HELP}.")
    return ReplCommand(command=command, raw=normalized)
