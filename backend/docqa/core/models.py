"""Value types shared by the store, retrieval and generation layers."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Chunk:
    """A stored passage and its vector distance to the query (lower is closer)."""

    content: str
    score: float


@dataclass(frozen=True)
class RerankedChunk(Chunk):
    """A Chunk with the lexical overlap score assigned by the reranker."""

    rerank_score: float = 0.0


@dataclass(frozen=True)
class Answer:
    """Generated answer plus the measurements taken while producing it."""

    text: str
    generation_time_ms: int
    prompt_length: int
    model: str
