"""Core modules: model backends, errors, shared value types."""

from .embeddings import EmbeddingBackend, build_embedding_backend
from .errors import (
    BackendUnavailableError,
    DocQAError,
    GenerationFailedError,
    IngestionError,
    NoActiveCorpusError,
    StoreNotInitializedError,
    ValidationError,
)
from .llm import GenerationBackend, GenerationOptions, build_generation_backend
from .models import Answer, Chunk, RerankedChunk

__all__ = [
    "EmbeddingBackend",
    "build_embedding_backend",
    "GenerationBackend",
    "GenerationOptions",
    "build_generation_backend",
    "Answer",
    "Chunk",
    "RerankedChunk",
    "DocQAError",
    "ValidationError",
    "NoActiveCorpusError",
    "StoreNotInitializedError",
    "BackendUnavailableError",
    "GenerationFailedError",
    "IngestionError",
]
