"""
Pytest configuration for the ragstore test suite.

Provides:
- a file-backed SQLite engine per test (worker threads need a real file)
- a ContentStore with small vectors
- FakeEmbedder, a deterministic Embedder implementation
"""

import hashlib
import sys
import threading
from pathlib import Path
from typing import List, Optional, Sequence

_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import pytest

from ragstore.content.store import ContentStore
from ragstore.db import create_db_engine, create_session_factory, init_db
from ragstore.errors import EmbeddingError

TEST_DIMENSIONS = 8


class FakeEmbedder:
    """
    Deterministic embedder: the vector of a text is derived from its SHA-256.

    fail_on: texts whose embedding raises EmbeddingError
    fail_batches: make every embed_batch call fail
    """

    def __init__(
        self,
        dimensions: int = TEST_DIMENSIONS,
        fail_on: Sequence[str] = (),
        fail_batches: bool = False,
    ):
        self.dimensions = dimensions
        self.fail_on = set(fail_on)
        self.fail_batches = fail_batches
        self.calls: List[str] = []
        self.batch_calls: List[List[str]] = []
        self._lock = threading.Lock()

    def vector_for(self, text: str) -> List[float]:
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return [(digest[i] - 127.5) / 127.5 for i in range(self.dimensions)]

    def embed(self, text: str, timeout: Optional[float] = None) -> List[float]:
        with self._lock:
            self.calls.append(text)
        if text in self.fail_on:
            raise EmbeddingError("Failed to generate embeddings")
        return self.vector_for(text)

    def embed_batch(self, texts: Sequence[str], timeout: Optional[float] = None) -> List[List[float]]:
        with self._lock:
            self.batch_calls.append(list(texts))
        if self.fail_batches or any(t in self.fail_on for t in texts):
            raise EmbeddingError("Failed to generate embeddings")
        return [self.vector_for(t) for t in texts]


@pytest.fixture
def engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'ragstore_test.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine):
    return ContentStore(create_session_factory(engine), dimensions=TEST_DIMENSIONS)


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def collection(store):
    return store.create_collection(name="Demo", slug="demo")
