"""
Application context shared by all requests.

Holds the single active corpus and the single generation backend. Built
once in the FastAPI lifespan and reached from handlers through
docqa.api.dependencies.get_app_context.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from docqa.config import Settings, settings as default_settings
from docqa.core.embeddings import EmbeddingBackend, build_embedding_backend
from docqa.core.llm import GenerationBackend, build_generation_backend
from docqa.ingestion.chunker import TextChunker
from docqa.ingestion.pipeline import IngestionPipeline
from docqa.rag.generator import AnswerGenerator
from docqa.rag.pipeline import QAPipeline
from docqa.rag.retriever import Retriever
from docqa.store.corpus import Corpus
from docqa.store.vector_store import ChromaChunkStore, build_chunk_store

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    corpus: Corpus
    generator: AnswerGenerator
    ingestion: IngestionPipeline
    pipeline: QAPipeline

    @classmethod
    def build(
        cls,
        config: Optional[Settings] = None,
        store: Optional[ChromaChunkStore] = None,
        embeddings: Optional[EmbeddingBackend] = None,
        generation_backend: Optional[GenerationBackend] = None,
    ) -> "AppContext":
        """Wire the service from configuration; any part may be supplied."""
        config = config or default_settings

        corpus = Corpus(
            store=store or build_chunk_store(config),
            embeddings=embeddings or build_embedding_backend(config),
            search_timeout=config.search_timeout,
        )
        generator = AnswerGenerator(generation_backend or build_generation_backend(config))
        ingestion = IngestionPipeline(
            corpus,
            chunker=TextChunker(
                chunk_size=config.chunk_size,
                chunk_overlap=config.chunk_overlap,
            ),
        )

        return cls(
            corpus=corpus,
            generator=generator,
            ingestion=ingestion,
            pipeline=QAPipeline(Retriever(corpus), generator),
        )

    async def startup(self) -> None:
        try:
            await self.corpus.attach_existing()
        except Exception as e:
            logger.error(f"Failed to attach to existing collection: {e}")
            logger.warning("Starting without an active corpus")

    async def shutdown(self) -> None:
        await self.generator.aclose()
