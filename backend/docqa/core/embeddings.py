"""
Embedding backends.

Two implementations share the EmbeddingBackend interface:
- LocalEmbeddingBackend: sentence-transformers model loaded in-process
- OllamaEmbeddingBackend: remote embeddings served by Ollama via LiteLLM
"""

import asyncio
import logging
import threading
from abc import ABC, abstractmethod
from typing import Optional

from litellm import aembedding

from docqa.config import Settings, settings as default_settings
from docqa.core.errors import BackendUnavailableError

logger = logging.getLogger(__name__)


class EmbeddingBackend(ABC):
    """Abstract interface for text -> embedding vector conversion."""

    model_name: str

    @abstractmethod
    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        """Embed a batch of passages, one vector per input text."""

    async def embed_query(self, text: str) -> list[float]:
        """Embed a single query string."""
        vectors = await self.embed_documents([text])
        if not vectors:
            raise BackendUnavailableError("No embedding returned for query")
        return vectors[0]


class LocalEmbeddingBackend(EmbeddingBackend):
    """
    In-process embeddings via sentence-transformers.

    The model is loaded on first use and shared by every later call.
    Vectors are L2-normalized so squared L2 distances fall in [0, 4].
    """

    def __init__(self, model_name: str = "all-MiniLM-L6-v2"):
        self.model_name = model_name
        self._model = None
        self._load_lock = threading.Lock()

    def _get_model(self):
        with self._load_lock:
            if self._model is None:
                from sentence_transformers import SentenceTransformer

                logger.info(f"Loading embedding model: {self.model_name}")
                self._model = SentenceTransformer(self.model_name)
            return self._model

    def _encode(self, texts: list[str]) -> list[list[float]]:
        model = self._get_model()
        embeddings = model.encode(
            texts,
            normalize_embeddings=True,
            show_progress_bar=False,
        )
        return [e.tolist() for e in embeddings]

    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        try:
            return await asyncio.to_thread(self._encode, texts)
        except Exception as e:
            logger.error(f"Local embedding failed: {e}")
            raise BackendUnavailableError(f"Embedding model {self.model_name} failed: {e}") from e


class OllamaEmbeddingBackend(EmbeddingBackend):
    """Remote embeddings from an Ollama server, called through LiteLLM."""

    def __init__(
        self,
        model_name: str = "nomic-embed-text",
        base_url: str = "http://localhost:11434",
        timeout: float = 60.0,
    ):
        self.model_name = model_name
        self.base_url = base_url
        self.timeout = timeout

    async def embed_documents(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        try:
            response = await aembedding(
                model=f"ollama/{self.model_name}",
                input=texts,
                api_base=self.base_url,
                timeout=self.timeout,
            )
        except Exception as e:
            logger.error(f"Ollama embedding failed: {e}")
            raise BackendUnavailableError(
                f"Failed to reach Ollama embeddings at {self.base_url}: {e}"
            ) from e

        return [item["embedding"] for item in response.data]


def build_embedding_backend(config: Optional[Settings] = None) -> EmbeddingBackend:
    """Create the embedding backend selected by configuration."""
    config = config or default_settings

    if config.embedding_backend == "local":
        return LocalEmbeddingBackend(model_name=config.embedding_model)
    if config.embedding_backend == "ollama":
        return OllamaEmbeddingBackend(
            model_name=config.ollama_embedding_model,
            base_url=config.ollama_base_url,
            timeout=config.search_timeout,
        )
    raise ValueError(
        f"Unknown embedding backend: {config.embedding_backend!r}. "
        f"Supported: 'local', 'ollama'"
    )
