"""Retrieval tools over the indexed document tree.

Each tool returns a JSON document. Invalid arguments produce an ``error``
payload instead of raising so the model can correct itself.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, ClassVar, Mapping

from ...documents.semantic_tree import SemanticTree
from ..orchestration.tools import Tool, ToolSpec

__all__ = [
    "SearchHeadingsTool",
    "SearchSectionsTool",
    "GetChunksTool",
    "default_tools",
]

_SECTION_NUMBER_RE = re.compile(r"(?:section\s*)?(\d+(?:\.\d+)*)", re.IGNORECASE)
_SECTION_PREFIX_RE = re.compile(r"^section\s*", re.IGNORECASE)


def _dump(payload: Mapping[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False)


def _missing(field_name: str, detail: str = "") -> str:
    suffix = f" ({detail})" if detail else ""
    return _dump({"error": f"Missing required field: {field_name}{suffix}"})


@dataclass
class SearchHeadingsTool:
    """Keyword and section-number search over heading titles."""

    tree: SemanticTree

    name: ClassVar[str] = "search_headings"
    spec: ClassVar[ToolSpec] = ToolSpec(
        name="search_headings",
        description=(
            "Search through document headings/section titles for keywords. Use this first to find "
            "relevant sections. Returns matching headings with their levels and associated chunk IDs."
        ),
        parameters={
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "Keywords to search for in headings (case-insensitive)",
                },
            },
            "required": ["query"],
        },
    )

    async def execute(self, arguments: Mapping[str, Any]) -> str:
        query = arguments.get("query")
        if not isinstance(query, str) or not query.strip():
            return _missing("query")

        section_match = _SECTION_NUMBER_RE.search(query)
        section_pattern = None
        if section_match:
            section_pattern = re.compile(rf"^{re.escape(section_match.group(1))}[.:\s]", re.IGNORECASE)
        terms = [term for term in _SECTION_PREFIX_RE.sub("", query.lower()).split() if term]

        matches = []
        for heading in self.tree.headings:
            if section_pattern is not None and section_pattern.match(heading.heading):
                matches.append(heading)
                continue
            lowered = heading.heading.lower()
            if any(term in lowered for term in terms):
                matches.append(heading)

        if not matches:
            return _dump(
                {
                    "found": False,
                    "message": f'No headings found matching "{query}"',
                    "suggestion": "Try different keywords or search for a specific section number",
                }
            )
        return _dump(
            {
                "found": True,
                "count": len(matches),
                "headings": [
                    {"heading": item.heading, "level": item.level, "chunkIds": list(item.chunk_ids)}
                    for item in matches
                ],
            }
        )


@dataclass
class SearchSectionsTool:
    """Exact lookup of a numbered section."""

    tree: SemanticTree

    name: ClassVar[str] = "search_sections"
    spec: ClassVar[ToolSpec] = ToolSpec(
        name="search_sections",
        description=(
            "Look up a specific section by its section number. Returns the chunk IDs associated with "
            "that section. Use section numbers like '1', '4.7', '15.2', etc."
        ),
        parameters={
            "type": "object",
            "properties": {
                "section_number": {
                    "type": "string",
                    "description": "The section number to look up (e.g., '1', '4.7', '15.2')",
                },
            },
            "required": ["section_number"],
        },
    )

    async def execute(self, arguments: Mapping[str, Any]) -> str:
        section_number = arguments.get("section_number")
        if not isinstance(section_number, str) or not section_number.strip():
            return _missing("section_number")

        wanted = section_number.strip()
        stripped = _SECTION_PREFIX_RE.sub("", wanted)
        for section in self.tree.sections:
            if section.section in (wanted, stripped):
                return _dump(
                    {
                        "found": True,
                        "section": section.section,
                        "chunkIds": list(section.chunk_ids),
                        "chunkCount": len(section.chunk_ids),
                    }
                )
        return _dump(
            {
                "found": False,
                "message": f'Section "{section_number}" not found',
                "availableSections": ", ".join(section.section for section in self.tree.sections),
            }
        )


@dataclass
class GetChunksTool:
    """Fetch chunk text by identifier."""

    tree: SemanticTree

    name: ClassVar[str] = "get_chunks"
    spec: ClassVar[ToolSpec] = ToolSpec(
        name="get_chunks",
        description=(
            "Retrieve the actual text content for given chunk IDs. Use this after finding relevant "
            "chunk IDs from search_headings or search_sections."
        ),
        parameters={
            "type": "object",
            "properties": {
                "chunk_ids": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Array of chunk IDs to retrieve (e.g., ['chunk-12', 'chunk-40'])",
                },
            },
            "required": ["chunk_ids"],
        },
    )

    async def execute(self, arguments: Mapping[str, Any]) -> str:
        chunk_ids = arguments.get("chunk_ids")
        if not isinstance(chunk_ids, list):
            return _missing("chunk_ids", "must be an array")

        found = []
        not_found = []
        for chunk_id in chunk_ids:
            chunk = self.tree.chunk(str(chunk_id))
            if chunk is None:
                not_found.append(chunk_id)
                continue
            found.append({"id": chunk.id, "content": chunk.content, "page": chunk.page})

        payload: dict[str, Any] = {"found": len(found), "chunks": found}
        if not_found:
            payload["notFound"] = not_found
        return _dump(payload)


def default_tools(tree: SemanticTree) -> list[Tool]:
    """Return the standard retrieval tools bound to ``tree``."""

    return [SearchHeadingsTool(tree), SearchSectionsTool(tree), GetChunksTool(tree)]
