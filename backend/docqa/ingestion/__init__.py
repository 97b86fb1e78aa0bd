"""Document ingestion pipeline: PDF parsing, chunking, indexing."""

from .pdf_parser import PDFParser
from .chunker import TextChunker
from .pipeline import IngestionPipeline

__all__ = ["PDFParser", "TextChunker", "IngestionPipeline"]
