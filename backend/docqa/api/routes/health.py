"""
Health check API routes.

Reports whether a document is indexed and whether the generation backend
has been prepared.
"""

import asyncio
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from docqa import __version__
from docqa.api.dependencies import get_app_context
from docqa.context import AppContext
from docqa.rag.generator import BackendState
from docqa.store.corpus import CorpusState

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


class CorpusHealth(BaseModel):
    state: CorpusState
    chunks: int
    embedding_model: str


class GenerationHealth(BaseModel):
    state: BackendState
    model: str


class HealthResponse(BaseModel):
    """Complete health check response."""
    status: str  # "healthy", "degraded"
    timestamp: str
    version: str
    corpus: CorpusHealth
    generation: GenerationHealth


@router.get("", response_model=HealthResponse)
@router.get("/", response_model=HealthResponse, include_in_schema=False)
async def health_check(context: AppContext = Depends(get_app_context)):
    """
    Health check endpoint.

    Status is "degraded" until a document has been indexed.
    """
    corpus = context.corpus
    try:
        chunks = await asyncio.to_thread(corpus.store.count)
    except Exception as e:
        logger.warning(f"Chunk count unavailable: {e}")
        chunks = 0

    return HealthResponse(
        status="healthy" if corpus.is_active else "degraded",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=__version__,
        corpus=CorpusHealth(
            state=corpus.state,
            chunks=chunks,
            embedding_model=corpus.embeddings.model_name,
        ),
        generation=GenerationHealth(
            state=context.generator.state,
            model=context.generator.model_name,
        ),
    )
