"""Prompt templates used by the agent controller."""

from __future__ import annotations

import logging
from pathlib import Path

__all__ = [
    "SYSTEM_PROMPT",
    "LOOP_NUDGE_PROMPT",
    "LOOP_DETECTED_NOTICE",
    "TURN_LIMIT_NOTICE",
    "load_system_prompt",
]

LOGGER = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a document retrieval assistant answering questions about a single PDF document.

The document has been indexed into headings, numbered sections and text chunks. Use the tools to find the passages that answer the question before responding:
- search_sections: look up a section by its number (e.g. "4.7") when the user names one.
- search_headings: search heading titles by keyword or section number when you do not know the exact section.
- get_chunks: fetch the text of chunk IDs returned by the search tools.

Guidelines:
- Base every answer on retrieved text and cite the section numbers or pages you used.
- Do not repeat a tool call with the same arguments; if a search finds nothing, try different keywords.
- If the document does not contain the answer, say so plainly.
"""

LOOP_NUDGE_PROMPT = (
    "You seem to be stuck in a loop. Please provide your answer now based on what you've found so far."
)

LOOP_DETECTED_NOTICE = "\n[Detected repeated tool calls - generating response...]\n"

TURN_LIMIT_NOTICE = "\n[Reached the tool turn limit - generating response...]\n"


def load_system_prompt(path: str | Path | None) -> str:
    """Return the prompt stored at ``path`` or the built-in default."""

    if not path:
        return SYSTEM_PROMPT
    prompt_path = Path(path).expanduser()
    try:
        text = prompt_path.read_text(encoding="utf-8").strip()
    except OSError as exc:
        LOGGER.warning("Unable to read system prompt from %s: %s", prompt_path, exc)
        return SYSTEM_PROMPT
    return text or SYSTEM_PROMPT
