"""Read-only access to the extracted document tree."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from jsonschema import Draft7Validator

__all__ = [
    "Chunk",
    "Heading",
    "Section",
    "SemanticTree",
    "SemanticTreeError",
    "SEMANTIC_TREE_SCHEMA",
    "load_semantic_tree",
]

LOGGER = logging.getLogger(__name__)

_CHUNK_IDS_SCHEMA = {"type": "array", "items": {"type": "string"}}

SEMANTIC_TREE_SCHEMA: Mapping[str, Any] = {
    "type": "object",
    "required": ["title", "summary", "chunks", "headings", "sections"],
    "properties": {
        "title": {"type": "string"},
        "summary": {"type": "string"},
        "chunks": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["id", "content", "page"],
                "properties": {
                    "id": {"type": "string"},
                    "content": {"type": "string"},
                    "page": {"type": "integer"},
                },
            },
        },
        "headings": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["heading", "level", "chunkIds"],
                "properties": {
                    "heading": {"type": "string"},
                    "level": {"type": "integer"},
                    "chunkIds": _CHUNK_IDS_SCHEMA,
                },
            },
        },
        "sections": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["section", "chunkIds"],
                "properties": {
                    "section": {"type": "string"},
                    "chunkIds": _CHUNK_IDS_SCHEMA,
                },
            },
        },
    },
}

_VALIDATOR = Draft7Validator(SEMANTIC_TREE_SCHEMA)


class SemanticTreeError(Exception):
    """Raised when the document tree cannot be read or does not match the schema."""


@dataclass(slots=True, frozen=True)
class Chunk:
    id: str
    content: str
    page: int


@dataclass(slots=True, frozen=True)
class Heading:
    heading: str
    level: int
    chunk_ids: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class Section:
    section: str
    chunk_ids: tuple[str, ...] = ()


@dataclass(slots=True)
class SemanticTree:
    """Headings, numbered sections and text chunks of one indexed document."""

    title: str
    summary: str
    chunks: list[Chunk] = field(default_factory=list)
    headings: list[Heading] = field(default_factory=list)
    sections: list[Section] = field(default_factory=list)
    _chunk_index: dict[str, Chunk] = field(init=False, repr=False, default_factory=dict)

    def __post_init__(self) -> None:
        self._chunk_index = {chunk.id: chunk for chunk in self.chunks}

    def chunk(self, chunk_id: str) -> Chunk | None:
        return self._chunk_index.get(chunk_id)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "SemanticTree":
        """Validate ``payload`` and build the tree.

        Raises:
            SemanticTreeError: If the payload does not match the tree schema.
        """
        errors = sorted(_VALIDATOR.iter_errors(payload), key=lambda error: list(error.path))
        if errors:
            first = errors[0]
            location = "/".join(str(part) for part in first.path) or "<root>"
            raise SemanticTreeError(f"Invalid semantic tree at {location}: {first.message}")
        return cls(
            title=payload["title"],
            summary=payload["summary"],
            chunks=[Chunk(id=item["id"], content=item["content"], page=item["page"]) for item in payload["chunks"]],
            headings=[
                Heading(heading=item["heading"], level=item["level"], chunk_ids=tuple(item["chunkIds"]))
                for item in payload["headings"]
            ],
            sections=[
                Section(section=item["section"], chunk_ids=tuple(item["chunkIds"]))
                for item in payload["sections"]
            ],
        )


def load_semantic_tree(path: str | Path) -> SemanticTree:
    """Load the tree written by the indexing pipeline."""

    tree_path = Path(path).expanduser()
    try:
        text = tree_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SemanticTreeError(f"Unable to read semantic tree {tree_path}: {exc}") from exc
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SemanticTreeError(f"Semantic tree {tree_path} is not valid JSON: {exc}") from exc
    tree = SemanticTree.from_dict(payload)
    LOGGER.info(
        "Loaded semantic tree %r from %s (%d chunks, %d headings, %d sections)",
        tree.title,
        tree_path,
        len(tree.chunks),
        len(tree.headings),
        len(tree.sections),
    )
    return tree
