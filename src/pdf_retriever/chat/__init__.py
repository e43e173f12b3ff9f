"""Terminal chat front-end."""

from .commands import ReplCommand, ReplCommandType, parse_repl_command
from .repl import ChatRepl

__all__ = ["ChatRepl", "ReplCommand", "ReplCommandType", "parse_repl_command"]
