"""
Retrieval and generation diagnostics, returned when a question is asked
with debug enabled. Built from already computed results; never changes them.
"""

from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from docqa.core.models import Answer
from docqa.rag.retriever import SCORE_THRESHOLD, SEARCH_K, Retrieval

PREVIEW_LENGTH = 150
QUALITY_WARNING = "Poor retrieval quality - document may not contain relevant information"


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class RetrievalDiagnostics(_CamelModel):
    total_chunks_searched: int
    chunks_used: int
    average_similarity_score: float
    top_scores: list[float]
    context_length: int
    quality_warning: Optional[str] = None


class GenerationDiagnostics(_CamelModel):
    prompt_length: int
    answer_length: int
    generation_time_ms: int
    model_used: str


class ChunkPreview(_CamelModel):
    index: int
    original_score: float
    rerank_score: float
    preview: str


class Diagnostics(_CamelModel):
    retrieval: RetrievalDiagnostics
    generation: GenerationDiagnostics
    retrieved_chunks: list[ChunkPreview]

    def to_response(self) -> dict:
        return self.model_dump(by_alias=True)


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def assemble_diagnostics(
    question: str,
    retrieval: Retrieval,
    raw_top_scores: Sequence[float],
    context: str,
    answer: Answer,
) -> Diagnostics:
    """Summarize how the answer to question was retrieved and generated."""
    used = retrieval.chunks
    top = used[0] if used else None

    return Diagnostics(
        retrieval=RetrievalDiagnostics(
            total_chunks_searched=SEARCH_K,
            chunks_used=len(used),
            average_similarity_score=round(_mean([c.score for c in used]), 4),
            top_scores=[round(score, 4) for score in raw_top_scores],
            context_length=len(context),
            quality_warning=(
                QUALITY_WARNING if top is not None and top.score > SCORE_THRESHOLD else None
            ),
        ),
        generation=GenerationDiagnostics(
            prompt_length=answer.prompt_length,
            answer_length=len(answer.text),
            generation_time_ms=answer.generation_time_ms,
            model_used=answer.model,
        ),
        retrieved_chunks=[
            ChunkPreview(
                index=i,
                original_score=round(chunk.score, 4),
                rerank_score=round(chunk.rerank_score, 3),
                preview=chunk.content[:PREVIEW_LENGTH] + "...",
            )
            for i, chunk in enumerate(used, start=1)
        ],
    )
