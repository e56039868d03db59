"""
Ingestion module - Handles PDF parsing, text chunking and upload ingestion.

This module is responsible for:
1. Extracting text from PDF files
2. Splitting text into manageable chunks for embedding
3. Turning an upload into stored vectors
"""

from .pdf_parser import PDFParser, extract_text
from .chunker import TextChunker, chunk_text, estimate_page
from .pipeline import DocumentIngestor, IngestionResult

__all__ = [
    "PDFParser",
    "extract_text",
    "TextChunker",
    "chunk_text",
    "estimate_page",
    "DocumentIngestor",
    "IngestionResult",
]
