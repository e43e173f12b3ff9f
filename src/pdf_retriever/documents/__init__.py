"""Document tree models shared by the retrieval tools."""

from .semantic_tree import (
    Chunk,
    Heading,
    Section,
    SemanticTree,
    SemanticTreeError,
    load_semantic_tree,
)

__all__ = [
    "Chunk",
    "Heading",
    "Section",
    "SemanticTree",
    "SemanticTreeError",
    "load_semantic_tree",
]
