"""
Context retrieval for RAG.

Composes similarity search, score-threshold filtering, lexical reranking
and context-budget truncation into the context handed to the generator.
"""

import logging
from dataclasses import dataclass
from typing import Sequence

from docqa.core.errors import NoActiveCorpusError
from docqa.core.models import Chunk, RerankedChunk
from docqa.rag.reranker import rerank
from docqa.store.corpus import Corpus

logger = logging.getLogger(__name__)

SEARCH_K = 15
SCORE_THRESHOLD = 0.6
CANDIDATE_LIMIT = 10
CONTEXT_LIMIT = 5
RAW_SCORE_LIMIT = 10


@dataclass(frozen=True)
class Retrieval:
    """Outcome of one retrieval call."""

    chunks: tuple[RerankedChunk, ...]
    raw_top_scores: tuple[float, ...]

    @property
    def context(self) -> str:
        return build_context(self.chunks)


def build_context(chunks: Sequence[Chunk]) -> str:
    """Join chunk contents into the generator's context block."""
    return "\n\n".join(chunk.content for chunk in chunks)


def select_candidates(hits: list[Chunk]) -> list[Chunk]:
    """
    Pick the chunks worth reranking.

    High-confidence hits (distance below SCORE_THRESHOLD) are preferred.
    When there are none the unfiltered top hits are used instead of
    returning nothing.
    """
    confident = [chunk for chunk in hits if chunk.score < SCORE_THRESHOLD]
    if confident:
        return confident[:CANDIDATE_LIMIT]
    return hits[:CANDIDATE_LIMIT]


class Retriever:
    """
    Retrieves the bounded, reranked context for a question.

    Usage:
        retriever = Retriever(corpus)
        retrieval = await retriever.retrieve("What is the capital of France?")
        print(retrieval.context)
    """

    def __init__(self, corpus: Corpus):
        self.corpus = corpus

    async def retrieve(self, question: str) -> Retrieval:
        if not self.corpus.is_active:
            raise NoActiveCorpusError()

        hits = await self.corpus.search(question, SEARCH_K)
        candidates = select_candidates(hits)
        reranked = rerank(question, candidates)
        selected = tuple(reranked[:CONTEXT_LIMIT])

        logger.debug(
            f"Retrieved {len(hits)} hits, {len(candidates)} candidates, "
            f"{len(selected)} used"
        )

        return Retrieval(
            chunks=selected,
            raw_top_scores=tuple(chunk.score for chunk in hits[:RAW_SCORE_LIMIT]),
        )
