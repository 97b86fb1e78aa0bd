"""
Recursive character chunking.

Text is split on the coarsest separator it contains (paragraphs, then
lines, then words, then characters) and the pieces are merged back into
chunks of at most chunk_size characters, with about chunk_overlap
characters repeated between consecutive chunks.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from docqa.config import settings

logger = logging.getLogger(__name__)

DEFAULT_SEPARATORS = ("\n\n", "\n", " ", "")


@dataclass
class TextChunk:
    """A chunk of text and its position in the document."""

    text: str
    chunk_index: int

    @property
    def char_count(self) -> int:
        return len(self.text)


class TextChunker:
    """
    Usage:
        chunker = TextChunker(chunk_size=800, chunk_overlap=200)
        chunks = chunker.chunk_text(document_text)

        for chunk in chunks:
            print(f"Chunk {chunk.chunk_index}: {chunk.char_count} chars")
    """

    def __init__(
        self,
        chunk_size: Optional[int] = None,
        chunk_overlap: Optional[int] = None,
        separators: tuple[str, ...] = DEFAULT_SEPARATORS,
    ):
        self.chunk_size = chunk_size or settings.chunk_size
        self.chunk_overlap = chunk_overlap if chunk_overlap is not None else settings.chunk_overlap
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be smaller than "
                f"chunk_size ({self.chunk_size})"
            )
        self.separators = separators

    def chunk_text(self, text: str) -> list[TextChunk]:
        """Split text into overlapping chunks."""
        if not text or not text.strip():
            return []

        pieces = self._split(text, list(self.separators))
        chunks = [TextChunk(text=piece, chunk_index=i) for i, piece in enumerate(pieces)]
        logger.debug(f"Created {len(chunks)} chunks from {len(text)} characters")
        return chunks

    def _split(self, text: str, separators: list[str]) -> list[str]:
        separator = separators[-1]
        remaining: list[str] = []
        for i, candidate in enumerate(separators):
            if candidate == "":
                separator = ""
                break
            if candidate in text:
                separator = candidate
                remaining = separators[i + 1:]
                break

        splits = text.split(separator) if separator else list(text)
        splits = [s for s in splits if s]

        chunks: list[str] = []
        short: list[str] = []
        for piece in splits:
            if len(piece) < self.chunk_size:
                short.append(piece)
                continue
            if short:
                chunks.extend(self._merge(short, separator))
                short = []
            if remaining:
                chunks.extend(self._split(piece, remaining))
            else:
                chunks.append(piece)

        if short:
            chunks.extend(self._merge(short, separator))
        return chunks

    def _merge(self, splits: list[str], separator: str) -> list[str]:
        """Greedily pack splits into chunks, carrying a tail of overlap forward."""
        sep_len = len(separator)
        chunks: list[str] = []
        window: list[str] = []
        total = 0

        for piece in splits:
            length = len(piece)
            if window and total + length + sep_len > self.chunk_size:
                chunk = separator.join(window).strip()
                if chunk:
                    chunks.append(chunk)
                # Drop from the front until the tail fits as overlap
                while window and (
                    total > self.chunk_overlap
                    or total + length + sep_len > self.chunk_size
                ):
                    total -= len(window[0]) + (sep_len if len(window) > 1 else 0)
                    window.pop(0)

            window.append(piece)
            total += length + (sep_len if len(window) > 1 else 0)

        chunk = separator.join(window).strip()
        if chunk:
            chunks.append(chunk)
        return chunks
