"""RAG pipeline: retrieval, reranking, generation, diagnostics."""

from .reranker import rerank
from .retriever import Retriever, Retrieval
from .generator import AnswerGenerator, BackendState
from .diagnostics import Diagnostics, assemble_diagnostics
from .pipeline import QAPipeline, QAResponse

__all__ = [
    "rerank",
    "Retriever",
    "Retrieval",
    "AnswerGenerator",
    "BackendState",
    "Diagnostics",
    "assemble_diagnostics",
    "QAPipeline",
    "QAResponse",
]
