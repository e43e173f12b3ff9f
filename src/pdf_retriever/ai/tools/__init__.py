"""Default retrieval tools exposed to the model."""

from .document_tools import GetChunksTool, SearchHeadingsTool, SearchSectionsTool, default_tools

__all__ = ["GetChunksTool", "SearchHeadingsTool", "SearchSectionsTool", "default_tools"]
