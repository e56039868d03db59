"""
Ingestion Pipeline - Turns an uploaded PDF into searchable vectors.

This module orchestrates the full ingestion flow for one upload:
1. Validate the upload (PDF, not empty, not too large)
2. Save a copy under the upload directory
3. Extract text from the PDF
4. Split text into chunks
5. Generate embeddings for each chunk (in parallel)
6. Store records + document entry in the vector store (atomically)

If any step after saving fails, the saved copy is removed and nothing is
stored.
"""

from __future__ import annotations

import re
import time
import uuid
from dataclasses import dataclass
from pathlib import Path

from ai_tutor.config import (
    CHUNK_OVERLAP,
    CHUNK_SIZE,
    EMBEDDING_CONCURRENCY,
    MAX_UPLOAD_BYTES,
    UPLOAD_DIR,
)
from ai_tutor.embeddings.embedder import BaseEmbedder
from ai_tutor.embeddings.vector_store import VectorRecord, VectorStore, make_record_id, utc_now
from ai_tutor.errors import ValidationError
from ai_tutor.ingestion.chunker import TextChunker, estimate_page
from ai_tutor.ingestion.pdf_parser import extract_text
from ai_tutor.logging_config import get_logger

logger = get_logger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
PDF_MAGIC = b"%PDF"


@dataclass
class IngestionResult:
    """Outcome of a successful ingestion."""
    doc_id: str
    chunk_count: int
    page_count: int

    def to_dict(self) -> dict:
        return {
            "docId": self.doc_id,
            "chunkCount": self.chunk_count,
            "pageCount": self.page_count,
        }


def safe_filename(filename: str) -> str:
    """Strip directories and anything unusual from an upload name."""
    name = Path(filename or "").name
    name = re.sub(r"[^A-Za-z0-9._-]+", "_", name).strip("._")
    return name or "upload.pdf"


def is_pdf(data: bytes, filename: str, content_type: str | None = None) -> bool:
    """Accept by content type, by .pdf extension, or by the %PDF header."""
    if content_type and content_type.split(";")[0].strip().lower() == PDF_CONTENT_TYPE:
        return True
    if filename and filename.lower().endswith(".pdf"):
        return True
    return data[:4] == PDF_MAGIC


class DocumentIngestor:
    """
    Ingests uploaded PDFs into the vector store.

    Example:
        ingestor = DocumentIngestor(store, create_embedder())
        result = ingestor.ingest(pdf_bytes, "notes.pdf")
        print(f"{result.chunk_count} chunks from {result.page_count} pages")
    """

    def __init__(
        self,
        vector_store: VectorStore,
        embedder: BaseEmbedder,
        upload_dir: str | Path = UPLOAD_DIR,
        chunk_size: int = CHUNK_SIZE,
        chunk_overlap: int = CHUNK_OVERLAP,
        max_upload_bytes: int = MAX_UPLOAD_BYTES,
        max_workers: int = EMBEDDING_CONCURRENCY,
    ):
        """
        Initialize the ingestor.

        Args:
            vector_store: Where records and documents are stored
            embedder: Embedder used for chunks (same one used for queries!)
            upload_dir: Directory that owns the saved uploads
            chunk_size: Characters per chunk
            chunk_overlap: Characters shared by consecutive chunks
            max_upload_bytes: Largest accepted upload
            max_workers: Max parallel embedding calls
        """
        self.vector_store = vector_store
        self.embedder = embedder
        self.upload_dir = Path(upload_dir)
        self.chunker = TextChunker(chunk_size=chunk_size, chunk_overlap=chunk_overlap)
        self.max_upload_bytes = max_upload_bytes
        self.max_workers = max_workers

    def validate(self, data: bytes, filename: str, content_type: str | None = None) -> None:
        """
        Raises:
            ValidationError: If the upload can't be ingested
        """
        if not data:
            raise ValidationError("No file uploaded")
        if len(data) > self.max_upload_bytes:
            raise ValidationError(
                "File too large",
                details=f"{len(data)} bytes, limit is {self.max_upload_bytes}",
            )
        if not is_pdf(data, filename, content_type):
            raise ValidationError("Only PDF files are allowed")

    def save_upload(self, data: bytes, filename: str) -> Path:
        """Write the upload to <upload_dir>/<ms>-<uuid>-<name>."""
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        stamp = int(time.time() * 1000)
        path = self.upload_dir / f"{stamp}-{uuid.uuid4()}-{safe_filename(filename)}"
        path.write_bytes(data)
        return path

    def ingest(self, data: bytes, filename: str, content_type: str | None = None) -> IngestionResult:
        """
        Ingest one uploaded PDF.

        Args:
            data: Raw file bytes
            filename: Original upload name
            content_type: MIME type reported by the client, if any

        Returns:
            IngestionResult with the new document id and counts

        Raises:
            ValidationError: If the upload is not an acceptable PDF
            ExtractionError: If no text can be extracted
        """
        self.validate(data, filename, content_type)
        logger.info("Processing PDF: %s", filename)

        saved_path = self.save_upload(data, filename)
        try:
            result = self._index(data, filename, saved_path)
        except BaseException:
            # No document owns the file unless the insert went through
            saved_path.unlink(missing_ok=True)
            raise

        logger.info("PDF processed: %d chunks indexed", result.chunk_count)
        return result

    def _index(self, data: bytes, filename: str, saved_path: Path) -> IngestionResult:
        text, page_count = extract_text(data, filename=filename)

        chunks = self.chunker.chunk_text(text)
        logger.info("Generating embeddings for %d chunks...", len(chunks))
        embeddings = self.embedder.embed_batch(
            [chunk.text for chunk in chunks],
            max_workers=self.max_workers,
        )

        doc_id = uuid.uuid4().hex
        records = [
            VectorRecord(
                id=make_record_id(doc_id, chunk.chunk_index),
                document_id=doc_id,
                embedding=embedding,
                text=chunk.text,
                chunk_index=chunk.chunk_index,
                metadata={
                    "filename": filename,
                    "page": estimate_page(chunk.chunk_index, len(chunks), page_count),
                    "totalPages": page_count,
                },
            )
            for chunk, embedding in zip(chunks, embeddings)
        ]

        self.vector_store.insert_document(
            doc_id,
            {
                "filename": filename,
                "uploaded_at": utc_now(),
                "num_chunks": len(chunks),
                "num_pages": page_count,
                "source_path": str(saved_path),
            },
            records,
        )
        return IngestionResult(doc_id=doc_id, chunk_count=len(chunks), page_count=page_count)
