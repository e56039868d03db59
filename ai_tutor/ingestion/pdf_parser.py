"""
PDF Parser - Extracts text from uploaded PDF files.

This module handles the extraction of text content from PDF files.
It uses pymupdf (fitz) which copes well with most study material,
including PDFs with mathematical content.

Key Concepts:
- Uploads arrive as raw bytes, so we open PDFs from memory
- Images and diagrams are not extracted (text only)
- A PDF that opens but has no text (e.g. a scan) is rejected
"""

import re
from dataclasses import dataclass
from pathlib import Path

import fitz  # pymupdf - the library is called 'fitz' historically

from ai_tutor.errors import ExtractionError, NoExtractableText
from ai_tutor.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class PageContent:
    """
    Represents the content of a single PDF page.

    Attributes:
        page_number: 1-indexed page number
        text: Extracted text content
    """
    page_number: int
    text: str


@dataclass
class DocumentContent:
    """
    Represents the full content of a PDF document.

    Attributes:
        filename: Name of the PDF file
        total_pages: Total number of pages
        pages: List of PageContent objects (pages with text only)
        full_text: All text concatenated
    """
    filename: str
    total_pages: int
    pages: list[PageContent]
    full_text: str


class PDFParser:
    """
    Parses PDF files and extracts text content.

    Example:
        parser = PDFParser()
        content = parser.parse_bytes(uploaded_bytes, "notes.pdf")
        print(content.full_text)
    """

    def __init__(self, clean_text: bool = True):
        """
        Initialize the PDF parser.

        Args:
            clean_text: If True, apply text cleaning (remove extra whitespace, etc.)
        """
        self.clean_text = clean_text

    def _clean_extracted_text(self, text: str) -> str:
        """
        Clean extracted text by removing common artifacts.

        This handles issues like:
        - Multiple consecutive newlines
        - Extra whitespace
        - Lines that are just page numbers
        """
        if not self.clean_text:
            return text

        # Replace multiple newlines with double newline (paragraph break)
        text = re.sub(r'\n{3,}', '\n\n', text)

        # Replace multiple spaces with single space
        text = re.sub(r' {2,}', ' ', text)

        # Remove lines that are just numbers (likely page numbers)
        lines = text.split('\n')
        cleaned_lines = [
            line for line in lines
            if not (line.strip().isdigit() and len(line.strip()) < 4)
        ]
        text = '\n'.join(cleaned_lines)

        return text.strip()

    def _parse_document(self, doc: fitz.Document, filename: str) -> DocumentContent:
        pages = []
        all_text = []
        total_pages = len(doc)

        for page_num in range(total_pages):
            cleaned = self._clean_extracted_text(doc[page_num].get_text())
            if cleaned:
                pages.append(PageContent(page_number=page_num + 1, text=cleaned))
                all_text.append(cleaned)

        return DocumentContent(
            filename=filename,
            total_pages=total_pages,
            pages=pages,
            full_text='\n\n'.join(all_text),
        )

    def parse_bytes(self, data: bytes, filename: str = "upload.pdf") -> DocumentContent:
        """
        Parse a PDF held in memory.

        Args:
            data: Raw PDF bytes
            filename: Name used in logs and errors

        Returns:
            DocumentContent with all extracted text and metadata

        Raises:
            ExtractionError: If the bytes are not a readable PDF
        """
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            raise ExtractionError(filename=filename, details=str(e)) from e

        try:
            if doc.needs_pass:
                raise ExtractionError(filename=filename, details="PDF is password protected")
            return self._parse_document(doc, filename)
        except (RuntimeError, ValueError) as e:
            # pymupdf reports damaged pages and encrypted content this way
            raise ExtractionError(filename=filename, details=str(e)) from e
        finally:
            doc.close()

    def parse_pdf(self, pdf_path: str | Path) -> DocumentContent:
        """
        Parse a PDF file on disk.

        Raises:
            FileNotFoundError: If the PDF file doesn't exist
            ExtractionError: If the PDF cannot be parsed
        """
        pdf_path = Path(pdf_path)
        if not pdf_path.exists():
            raise FileNotFoundError(f"PDF not found: {pdf_path}")
        return self.parse_bytes(pdf_path.read_bytes(), pdf_path.name)


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def extract_text(data: bytes, filename: str = "upload.pdf", clean: bool = True) -> tuple[str, int]:
    """
    Extract all text and the page count from PDF bytes.

    This is the entry point the ingestion pipeline uses.

    Args:
        data: Raw PDF bytes
        filename: Original filename (for error messages)
        clean: Whether to clean the extracted text

    Returns:
        Tuple of (text, page_count)

    Raises:
        ExtractionError: If the PDF can't be opened
        NoExtractableText: If the PDF has no text at all
    """
    content = PDFParser(clean_text=clean).parse_bytes(data, filename)

    if not content.full_text.strip():
        raise NoExtractableText(filename=filename)

    logger.debug(
        "Extracted %d chars from %s (%d pages)",
        len(content.full_text), filename, content.total_pages,
    )
    return content.full_text, content.total_pages
