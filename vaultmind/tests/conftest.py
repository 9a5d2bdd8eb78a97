"""
Shared test doubles.

- DictVault: in-memory document tree that counts reads
- KeywordEmbeddingProvider: one dimension per topic word
- VectorTableProvider: fixed vectors looked up by marker substring
- FakeModel / CountingModelFactory: stand-ins for the fastembed model
"""

import time
from typing import Dict, List, Optional, Sequence

import pytest

from vaultmind.common.embedding_service import EmbeddingProvider
from vaultmind.common.errors import NotFoundError


class DictVault:
    """Notes kept in a dict; paths listed in insertion order."""

    def __init__(self, notes: Dict[str, str], missing: Sequence[str] = ()):
        self.notes = dict(notes)
        self.missing = set(missing)  # listed but unreadable
        self.reads: List[str] = []
        self.list_calls = 0

    def list_text_files(self, root: str) -> List[str]:
        self.list_calls += 1
        return [p for p in list(self.notes) + sorted(self.missing) if p.endswith(".md")]

    def read_text(self, root: str, path: str) -> str:
        self.reads.append(path)
        if path in self.missing or path not in self.notes:
            raise NotFoundError(f"Note not found: {path}")
        return self.notes[path]


class KeywordEmbeddingProvider(EmbeddingProvider):
    """Embeds text as topic-word presence flags."""

    TOPICS = ("todo", "recipe", "travel", "meeting", "grocer")

    def __init__(self, topics: Sequence[str] = TOPICS):
        self.topics = tuple(topics)
        self.calls: List[str] = []

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        lower = text.lower()
        return [1.0 if t in lower else 0.0 for t in self.topics]


class VectorTableProvider(EmbeddingProvider):
    """Returns the vector of the first marker contained in the text, else []."""

    def __init__(self, table: Dict[str, List[float]]):
        self.table = table
        self.calls: List[str] = []

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        for marker, vector in self.table.items():
            if marker in text:
                return list(vector)
        return []


class EmptyEmbeddingProvider(EmbeddingProvider):
    """Always fails to embed."""

    async def embed(self, text: str) -> List[float]:
        return []


class FakeModel:
    """Mimics fastembed.TextEmbedding.embed (a generator of vectors)."""

    def __init__(self, vector: Optional[List[float]] = None):
        self.vector = vector or [1.0, 2.0, 2.0]

    def embed(self, texts):
        for _ in texts:
            yield list(self.vector)


class CountingModelFactory:
    """Model factory that records how often it was asked to load."""

    def __init__(self, delay: float = 0.0, error: Optional[Exception] = None):
        self.delay = delay
        self.error = error
        self.calls: List[str] = []

    def __call__(self, model_name: str) -> FakeModel:
        self.calls.append(model_name)
        if self.delay:
            time.sleep(self.delay)
        if self.error:
            raise self.error
        return FakeModel()


@pytest.fixture
def todo_vault():
    return DictVault({
        "todo.md": "# Todos\n- buy milk\n- call mom\n- renew passport",
        "random.md": "The weather was nice today. I walked by the river.",
    })
