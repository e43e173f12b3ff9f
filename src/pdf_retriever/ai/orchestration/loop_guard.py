"""Detection of identical consecutive tool invocations."""

from __future__ import annotations

import json
import logging
from collections import deque
from typing import Any, Mapping

__all__ = ["LoopGuard", "DOOM_LOOP_THRESHOLD", "canonical_arguments"]

LOGGER = logging.getLogger(__name__)

DOOM_LOOP_THRESHOLD = 3


def canonical_arguments(arguments: Mapping[str, Any]) -> str:
    """Serialize arguments with sorted keys so equal mappings compare equal.

    Values that JSON cannot represent fall back to ``str()``, so two distinct
    objects with the same text compare equal and objects whose ``str()``
    varies between calls never do.
    """
    return json.dumps(arguments, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


class LoopGuard:
    """Tracks the trailing window of (tool name, arguments) pairs for one session.

    The window is never reset between turns. :meth:`record` reports a loop
    once the last ``threshold`` entries are identical.
    """

    def __init__(self, threshold: int = DOOM_LOOP_THRESHOLD) -> None:
        if threshold < 1:
            raise ValueError("threshold must be at least 1")
        self._threshold = threshold
        self._window: deque[tuple[str, str]] = deque(maxlen=threshold)
        self._total = 0

    @property
    def threshold(self) -> int:
        return self._threshold

    @property
    def total_recorded(self) -> int:
        return self._total

    def record(self, name: str, arguments: Mapping[str, Any]) -> bool:
        """Log a call and return ``True`` when it completes a repetition run."""
        signature = (name, canonical_arguments(arguments))
        self._window.append(signature)
        self._total += 1
        if len(self._window) < self._threshold:
            return False
        looping = all(entry == signature for entry in self._window)
        if looping:
            LOGGER.warning(
                "Tool %s called %s times in a row with identical arguments",
                name,
                self._threshold,
            )
        return looping
