"""Shared pytest fixtures and fakes for DocQA tests."""

import asyncio
from typing import Optional

import pytest
from fastapi.testclient import TestClient

from docqa.config import Settings
from docqa.context import AppContext
from docqa.core.embeddings import EmbeddingBackend
from docqa.core.errors import BackendUnavailableError, StoreNotInitializedError
from docqa.core.llm import GenerationBackend
from docqa.core.models import Chunk
from docqa.store.corpus import Corpus


# -- Fake EmbeddingBackend --

class FakeEmbeddingBackend(EmbeddingBackend):
    """Returns tiny deterministic vectors and records what was embedded."""

    model_name = "fake-embedder"

    def __init__(self):
        self.calls: list[list[str]] = []

    async def embed_documents(self, texts):
        self.calls.append(list(texts))
        return [[float(len(t)), 1.0] for t in texts]


# -- Fake chunk store --

class FakeChunkStore:
    """
    In-memory stand-in for ChromaChunkStore.

    With preset hits, every search returns them (truncated to k).
    After replace(), stored texts are returned with increasing distances.
    """

    def __init__(self, hits: Optional[list[Chunk]] = None):
        self.hits = list(hits) if hits is not None else None
        self.texts: list[str] = []
        self._active = hits is not None
        self.search_calls: list[int] = []

    @property
    def is_active(self) -> bool:
        return self._active

    def attach(self) -> bool:
        return self._active

    def replace(self, texts, embeddings):
        self.texts = list(texts)
        self.hits = None
        self._active = True
        return len(self.texts)

    def search(self, query_embedding, k):
        if not self._active:
            raise StoreNotInitializedError()
        self.search_calls.append(k)
        if self.hits is not None:
            return self.hits[:k]
        return [
            Chunk(content=text, score=round(0.1 * (i + 1), 4))
            for i, text in enumerate(self.texts[:k])
        ]

    def count(self) -> int:
        return len(self.hits) if self.hits is not None else len(self.texts)


# -- Fake GenerationBackend --

class FakeGenerationBackend(GenerationBackend):
    """Canned completions with optional simulated setup failures."""

    model_name = "fake-llm"

    def __init__(
        self,
        response: str = "Paris is the capital of France.",
        prepare_failures: int = 0,
        prepare_delay: float = 0.0,
        generate_error: Optional[Exception] = None,
    ):
        self.response = response
        self.prepare_failures = prepare_failures
        self.prepare_delay = prepare_delay
        self.generate_error = generate_error
        self.prepare_calls = 0
        self.prompts: list[str] = []
        self.closed = False

    async def prepare(self):
        self.prepare_calls += 1
        if self.prepare_delay:
            await asyncio.sleep(self.prepare_delay)
        if self.prepare_failures > 0:
            self.prepare_failures -= 1
            raise BackendUnavailableError("simulated network error")

    async def generate(self, prompt):
        self.prompts.append(prompt)
        if self.generate_error is not None:
            raise self.generate_error
        return self.response

    async def aclose(self):
        self.closed = True


def make_hits(*scores: float, prefix: str = "chunk") -> list[Chunk]:
    """Chunks named chunk-0, chunk-1, ... with the given distances."""
    return [Chunk(content=f"{prefix}-{i}", score=s) for i, s in enumerate(scores)]


# -- Fixtures --

@pytest.fixture
def fake_embeddings():
    return FakeEmbeddingBackend()


@pytest.fixture
def fake_backend():
    return FakeGenerationBackend()


@pytest.fixture
def empty_store():
    return FakeChunkStore()


@pytest.fixture
def make_corpus(fake_embeddings):
    def _make(hits: Optional[list[Chunk]] = None) -> Corpus:
        return Corpus(store=FakeChunkStore(hits), embeddings=fake_embeddings)
    return _make


@pytest.fixture
def test_settings():
    return Settings(
        chroma_persist_directory=None,
        generation_backend="ollama",
        embedding_backend="local",
    )


@pytest.fixture
def app_context(test_settings, empty_store, fake_embeddings, fake_backend):
    return AppContext.build(
        config=test_settings,
        store=empty_store,
        embeddings=fake_embeddings,
        generation_backend=fake_backend,
    )


@pytest.fixture
def client(app_context):
    from docqa.main import create_app

    with TestClient(create_app(app_context)) as test_client:
        yield test_client
