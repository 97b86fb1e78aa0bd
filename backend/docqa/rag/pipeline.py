"""
RAG pipeline orchestration.

Combines retrieval and generation into a complete
question-answering pipeline.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

from docqa.core.errors import ValidationError
from docqa.core.models import Answer
from docqa.rag.diagnostics import Diagnostics, assemble_diagnostics
from docqa.rag.generator import AnswerGenerator
from docqa.rag.retriever import Retriever

logger = logging.getLogger(__name__)


@dataclass
class QAResponse:
    """Answer to one question, with diagnostics when requested."""

    answer: Answer
    diagnostics: Optional[Diagnostics] = None

    def to_dict(self) -> dict:
        body = {"answer": self.answer.text}
        if self.diagnostics is not None:
            body["diagnostics"] = self.diagnostics.to_response()
        return body


class QAPipeline:
    """
    Question answering over the active corpus.

    Orchestrates:
    1. Retrieval of the reranked, bounded context
    2. Answer generation
    3. Diagnostics (debug only)

    Usage:
        pipeline = QAPipeline(retriever, generator)
        response = await pipeline.ask("What are the payment terms?", debug=True)
        print(response.to_dict())
    """

    def __init__(self, retriever: Retriever, generator: AnswerGenerator):
        self.retriever = retriever
        self.generator = generator

    async def ask(self, question: str, debug: bool = False) -> QAResponse:
        if not question:
            raise ValidationError("Question is required.")

        retrieval_start = time.perf_counter()
        retrieval = await self.retriever.retrieve(question)
        retrieval_time = (time.perf_counter() - retrieval_start) * 1000

        context = retrieval.context
        answer = await self.generator.answer(context, question)

        logger.info(
            f"Answered with {len(retrieval.chunks)} chunks "
            f"(retrieval {retrieval_time:.0f}ms, generation {answer.generation_time_ms}ms)"
        )

        diagnostics = None
        if debug:
            diagnostics = assemble_diagnostics(
                question=question,
                retrieval=retrieval,
                raw_top_scores=retrieval.raw_top_scores,
                context=context,
                answer=answer,
            )

        return QAResponse(answer=answer, diagnostics=diagnostics)
