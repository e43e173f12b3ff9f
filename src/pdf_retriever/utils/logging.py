"""Logging for the retriever agent.

Records always go to a rotating log file. The terminal belongs to the chat
loop: while it is interactive nothing is logged to the console, otherwise
warnings and errors are mirrored to stderr.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
import sys
from dataclasses import dataclass
from pathlib import Path

__all__ = [
    "DEBUG_ENV_VAR",
    "LOG_DIR_ENV_VAR",
    "LoggingState",
    "debug_requested",
    "get_log_path",
    "setup_logging",
]

DEBUG_ENV_VAR = "PDF_RETRIEVER_DEBUG"
LOG_DIR_ENV_VAR = "PDF_RETRIEVER_LOG_DIR"
LOG_FILE_NAME = "pdf_retriever.log"

_DEFAULT_LOG_DIR = Path.home() / ".pdf_retriever" / "logs"
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
# Transport loggers; in debug mode they are allowed to report request lines at INFO.
_TRANSPORT_LOGGERS: tuple[str, ...] = ("httpx", "httpcore", "openai")
_FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_CONSOLE_FORMAT = "%(levelname)s: %(message)s"


@dataclass(slots=True, frozen=True)
class LoggingState:
    """Where records are written and at which verbosity."""

    path: Path
    debug: bool
    interactive: bool


_STATE: LoggingState | None = None


def debug_requested(settings_flag: bool = False) -> bool:
    """Return ``True`` when ``PDF_RETRIEVER_DEBUG`` or the ``debug_logging`` setting asks for DEBUG."""

    value = os.environ.get(DEBUG_ENV_VAR, "")
    return settings_flag or value.strip().lower() in _TRUE_VALUES


def setup_logging(
    *,
    debug: bool | None = None,
    interactive: bool = True,
    log_dir: Path | str | None = None,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
) -> LoggingState:
    """Route the agent's logging to its log file.

    ``debug`` defaults to the ``PDF_RETRIEVER_DEBUG`` flag. Calling again with
    the same resolved configuration is a no-op; a different one (typically the
    settings file switching debug on after startup) replaces the handlers.
    """

    global _STATE
    resolved_debug = debug_requested() if debug is None else debug
    log_path = _resolve_log_dir(log_dir) / LOG_FILE_NAME
    state = LoggingState(path=log_path, debug=resolved_debug, interactive=interactive)
    if state == _STATE:
        return state

    log_path.parent.mkdir(parents=True, exist_ok=True)
    level = logging.DEBUG if resolved_debug else logging.INFO

    file_handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    file_handler.setFormatter(logging.Formatter(fmt=_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    handlers: list[logging.Handler] = [file_handler]

    if not interactive:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
        handlers.append(console_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.captureWarnings(True)

    transport_level = logging.INFO if resolved_debug else logging.WARNING
    for name in _TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(transport_level)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    _STATE = state
    logging.getLogger(__name__).debug(
        "Logging to %s (debug=%s, interactive=%s)", log_path, resolved_debug, interactive
    )
    return state


def get_log_path() -> Path | None:
    """Return the currently configured log file if available."""

    return _STATE.path if _STATE is not None else None


def _resolve_log_dir(log_dir: Path | str | None) -> Path:
    return Path(log_dir or os.environ.get(LOG_DIR_ENV_VAR) or _DEFAULT_LOG_DIR).expanduser()
