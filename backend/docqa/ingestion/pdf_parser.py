"""
PDF text extraction for uploaded documents.
"""

import logging
from dataclasses import dataclass, field

import fitz  # PyMuPDF

logger = logging.getLogger(__name__)


@dataclass
class PageContent:
    """Text extracted from a single PDF page."""

    page_number: int
    text: str


@dataclass
class ParsedDocument:
    """An uploaded PDF reduced to its text."""

    filename: str
    pages: list[PageContent] = field(default_factory=list)

    @property
    def full_text(self) -> str:
        return "\n\n".join(page.text for page in self.pages if page.text)

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def total_characters(self) -> int:
        return len(self.full_text)


class PDFParser:
    """
    PDF parser using PyMuPDF.

    Usage:
        parser = PDFParser()
        doc = parser.parse_bytes(data, filename="report.pdf")
        print(doc.full_text)
    """

    def __init__(self, preserve_layout: bool = True):
        self.preserve_layout = preserve_layout

    def parse_bytes(self, data: bytes, filename: str = "document.pdf") -> ParsedDocument:
        """
        Parse PDF from bytes (e.g., uploaded file).

        Raises whatever PyMuPDF raises for data that is not a readable PDF.
        """
        logger.info(f"Parsing PDF from bytes: {filename}")

        with fitz.open(stream=data, filetype="pdf") as doc:
            pages = [
                PageContent(page_number=number, text=self._extract_text(page))
                for number, page in enumerate(doc, start=1)
            ]

        parsed = ParsedDocument(filename=filename, pages=pages)
        logger.info(
            f"Parsed {parsed.page_count} pages, {parsed.total_characters} characters"
        )
        return parsed

    def _extract_text(self, page: fitz.Page) -> str:
        text = page.get_text("text", sort=self.preserve_layout)
        return self._clean_text(text)

    def _clean_text(self, text: str) -> str:
        """Strip trailing spaces, collapse blank-line runs and double spaces."""
        cleaned_lines = []

        for line in text.split("\n"):
            line = line.rstrip()
            if line or (cleaned_lines and cleaned_lines[-1]):
                cleaned_lines.append(line)

        text = "\n".join(cleaned_lines)

        while "  " in text:
            text = text.replace("  ", " ")

        return text.strip()
