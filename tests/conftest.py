"""Shared pytest fixtures for all tests."""

import pytest
import shutil
import uuid
from pathlib import Path
from typing import Dict, List

from kb_assist.api.services.rag_config_service import RagConfig
from kb_assist.api.services.vector_store_service import VectorStoreService


def _create_workspace_temp_dir(kind: str) -> Path:
    """Create a temporary directory under repository-local .pytest_work."""
    repo_root = Path(__file__).resolve().parents[1]
    root_dir = repo_root / ".pytest_work" / kind
    root_dir.mkdir(parents=True, exist_ok=True)
    temp_dir = root_dir / f"{kind}_{uuid.uuid4().hex[:8]}"
    temp_dir.mkdir(parents=True, exist_ok=True)
    return temp_dir


@pytest.fixture
def tmp_path():
    """Workspace-local replacement for pytest's tmp_path fixture."""
    temp_dir = _create_workspace_temp_dir("tmp_path")
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def temp_config_dir():
    """Create temporary directory for config files."""
    temp_dir = _create_workspace_temp_dir("config")
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


class FakeEmbeddings:
    """LangChain-style embeddings backend returning canned vectors."""

    def __init__(self, vectors: Dict[str, List[float]] = None, default=None, dim: int = 3):
        self.vectors = dict(vectors or {})
        self.default = default
        self.dim = dim
        self.calls: List[str] = []

    async def aembed_query(self, text: str):
        self.calls.append(text)
        if text in self.vectors:
            return self.vectors[text]
        if self.default is not None:
            return self.default
        # Deterministic, non-zero vector derived from the text
        seed = sum(ord(ch) for ch in text) or 1
        return [float((seed * (i + 3)) % 17 + 1) for i in range(self.dim)]


@pytest.fixture
def fake_embeddings():
    return FakeEmbeddings()


@pytest.fixture
def vector_store(tmp_path):
    """Vector store on a fresh SQLite file, dimension inferred per tier."""
    return VectorStoreService(tmp_path / "kb_vectors.sqlite3", dimension=0)


@pytest.fixture
def rag_config():
    config = RagConfig()
    config.chunking.max_words = 5
    config.chunking.overlap_words = 1
    return config
