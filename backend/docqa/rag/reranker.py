"""
Lexical reranking of vector-search candidates.

A candidate's rerank score is the fraction of the question's distinctive
tokens (longer than three characters) that occur anywhere in the chunk.
"""

import re
from typing import Sequence

from docqa.core.models import Chunk, RerankedChunk

MIN_QUESTION_TOKEN_LENGTH = 4

_NON_WORD = re.compile(r"\W+")


def tokenize(text: str) -> list[str]:
    """Lowercase text and split it on runs of non-word characters."""
    return [token for token in _NON_WORD.split(text.lower()) if token]


def question_tokens(question: str) -> list[str]:
    """Distinctive question tokens in order. Repeats are kept and each one counts."""
    return [t for t in tokenize(question) if len(t) >= MIN_QUESTION_TOKEN_LENGTH]


def overlap_score(tokens: Sequence[str], content: str) -> float:
    """
    Fraction of tokens present in content.

    Returns 0.0 when tokens is empty, so such questions keep the
    incoming distance order after sorting.
    """
    if not tokens:
        return 0.0
    doc_tokens = set(tokenize(content))
    return sum(1 for token in tokens if token in doc_tokens) / len(tokens)


def rerank(question: str, candidates: Sequence[Chunk]) -> list[RerankedChunk]:
    """
    Re-score candidates against the question and sort them.

    Sorting is stable: candidates with equal scores keep their incoming
    (distance-sorted) order.
    """
    tokens = question_tokens(question)
    reranked = [
        RerankedChunk(
            content=chunk.content,
            score=chunk.score,
            rerank_score=overlap_score(tokens, chunk.content),
        )
        for chunk in candidates
    ]
    return sorted(reranked, key=lambda chunk: chunk.rerank_score, reverse=True)
