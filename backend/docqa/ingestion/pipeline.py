"""
Document ingestion pipeline orchestration.

Coordinates:
1. PDF parsing
2. Text chunking
3. Embedding and corpus replacement
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from docqa.core.errors import IngestionError
from docqa.ingestion.chunker import TextChunk, TextChunker
from docqa.ingestion.pdf_parser import PDFParser
from docqa.store.corpus import Corpus

logger = logging.getLogger(__name__)


@dataclass
class IngestionResult:
    """Result of indexing one uploaded document."""

    filename: str
    pages_parsed: int
    characters: int
    chunks: list[TextChunk] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "filename": self.filename,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "metrics": {
                "pages": self.pages_parsed,
                "characters": self.characters,
                "chunks": len(self.chunks),
            },
        }


class IngestionPipeline:
    """
    Turns an uploaded PDF into the active corpus.

    Usage:
        pipeline = IngestionPipeline(corpus)
        result = await pipeline.ingest_bytes(data, filename="report.pdf")
        print(f"Indexed {len(result.chunks)} chunks")
    """

    def __init__(
        self,
        corpus: Corpus,
        pdf_parser: Optional[PDFParser] = None,
        chunker: Optional[TextChunker] = None,
    ):
        self.corpus = corpus
        self.pdf_parser = pdf_parser or PDFParser()
        self.chunker = chunker or TextChunker()

    async def ingest_bytes(self, data: bytes, filename: str = "document.pdf") -> IngestionResult:
        """Parse, chunk and index a PDF, replacing the current corpus."""
        started_at = datetime.now()

        parsed = await asyncio.to_thread(self.pdf_parser.parse_bytes, data, filename)
        return await self.ingest_text(
            parsed.full_text,
            filename=filename,
            pages_parsed=parsed.page_count,
            started_at=started_at,
        )

    async def ingest_text(
        self,
        text: str,
        filename: str = "uploaded_text",
        pages_parsed: int = 0,
        started_at: Optional[datetime] = None,
    ) -> IngestionResult:
        """Chunk and index already extracted text."""
        result = IngestionResult(
            filename=filename,
            pages_parsed=pages_parsed,
            characters=len(text),
            started_at=started_at or datetime.now(),
        )

        result.chunks = self.chunker.chunk_text(text)
        if not result.chunks:
            raise IngestionError(f"No text could be extracted from {filename}")

        await self.corpus.replace([chunk.text for chunk in result.chunks])
        result.completed_at = datetime.now()

        logger.info(
            f"Ingested {filename}: {pages_parsed} pages, "
            f"{len(result.chunks)} chunks"
        )
        return result
