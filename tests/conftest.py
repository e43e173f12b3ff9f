"""Shared pytest fixtures."""

from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path

import pytest

from pdf_retriever.documents import SemanticTree
from pdf_retriever.utils import logging as logging_utils

from tests.helpers import SAMPLE_TREE


@pytest.fixture
def tree_payload() -> dict:
    return copy.deepcopy(SAMPLE_TREE)


@pytest.fixture
def semantic_tree(tree_payload: dict) -> SemanticTree:
    return SemanticTree.from_dict(tree_payload)


@pytest.fixture
def tree_file(tmp_path: Path, tree_payload: dict) -> Path:
    path = tmp_path / "semantic-tree.json"
    path.write_text(json.dumps(tree_payload), encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep user environment variables and log files out of the tests."""
    for name in list(os.environ):
        if name.startswith("PDF_RETRIEVER_") or name == "OPENAI_API_KEY":
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("PDF_RETRIEVER_LOG_DIR", str(tmp_path / "logs"))


@pytest.fixture(autouse=True)
def _restore_root_logger(monkeypatch: pytest.MonkeyPatch):
    """Undo handlers installed by ``setup_logging`` during a test."""
    monkeypatch.setattr(logging_utils, "_STATE", None)
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)
