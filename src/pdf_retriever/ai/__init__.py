"""Completion client, prompts, orchestration loop and document tools."""

from .client import AIClient, AIStreamEvent, ClientSettings, ToolCallDelta

__all__ = ["AIClient", "AIStreamEvent", "ClientSettings", "ToolCallDelta"]
