"""
Vector Store - Keeps embeddings in memory and searches them.

This module holds every chunk of every uploaded document together with
its embedding, plus a small registry of the documents themselves.

Key Concepts:
- Records: one per chunk (text + embedding + metadata)
- Documents: the uploaded PDFs the records belong to
- Search: cosine similarity between the query vector and every record

How it works:
1. Store: chunk embeddings + document entry -> VectorStore (one atomic step)
2. Query: question embedding -> score all records -> return best texts

Thread safety:
All mutations take a single lock. Records live in a list that is replaced,
never modified in place, so a reader grabs a consistent snapshot under the
lock and scores it without blocking writers.
"""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Sequence

import numpy as np

from ai_tutor.config import EMBEDDING_DIMENSION, TOP_K_CHUNKS
from ai_tutor.errors import DimensionMismatch, NotFound
from ai_tutor.logging_config import get_logger

logger = get_logger(__name__)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def make_record_id(document_id: str, chunk_index: int) -> str:
    """Record ids are derived from the owning document and chunk position."""
    return f"{document_id}-chunk-{chunk_index}"


@dataclass
class Document:
    """
    An uploaded document.

    Attributes:
        id: Unique identifier generated at ingestion
        filename: Original upload name
        uploaded_at: ISO timestamp of the upload
        num_chunks: Number of chunks indexed
        num_pages: Page count reported by the extractor
        source_path: Where the uploaded file is stored
        created_at: Stamped by the store when the document is registered
    """
    id: str
    filename: str = ""
    uploaded_at: str = ""
    num_chunks: int = 0
    num_pages: int = 0
    source_path: str | None = None
    created_at: str = ""

    def to_summary(self) -> dict:
        """Listing shape used by the API."""
        return {
            "id": self.id,
            "filename": self.filename,
            "uploadedAt": self.uploaded_at,
            "numChunks": self.num_chunks,
            "numPages": self.num_pages,
        }


@dataclass(frozen=True)
class VectorRecord:
    """
    One embedded chunk.

    Attributes:
        id: "<document_id>-chunk-<chunk_index>"
        document_id: Owning document
        embedding: Vector of the store's dimension
        text: The chunk text
        chunk_index: Position among the document's chunks
        metadata: {"filename", "page", "totalPages"}
    """
    id: str
    document_id: str
    embedding: list[float]
    text: str
    chunk_index: int
    metadata: dict = field(default_factory=dict)


@dataclass
class SearchResult:
    """
    A record returned by a search - everything except the embedding.

    Attributes:
        id: Record identifier
        document_id: Owning document
        text: The retrieved chunk text
        chunk_index: Position within the document
        metadata: filename, page, totalPages
        similarity: Cosine similarity to the query (higher = more similar)
    """
    id: str
    document_id: str
    text: str
    chunk_index: int
    metadata: dict
    similarity: float

    @property
    def filename(self) -> str | None:
        """Get the source filename from metadata."""
        return self.metadata.get("filename")

    @property
    def page(self) -> int:
        """Get the (estimated) page number from metadata."""
        return self.metadata.get("page", 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "documentId": self.document_id,
            "text": self.text,
            "chunkIndex": self.chunk_index,
            "metadata": self.metadata,
            "similarity": self.similarity,
        }


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    dot(a, b) / (|a| * |b|)

    Returns NaN when either vector has zero norm.

    Raises:
        DimensionMismatch: If the vectors have different lengths
    """
    if len(a) != len(b):
        raise DimensionMismatch(len(a), len(b))

    vec_a = np.asarray(a, dtype=np.float64)
    vec_b = np.asarray(b, dtype=np.float64)
    denominator = np.linalg.norm(vec_a) * np.linalg.norm(vec_b)
    if denominator == 0:
        return math.nan
    return float(np.dot(vec_a, vec_b) / denominator)


class VectorStore:
    """
    In-memory vector store for chunk embeddings and their documents.

    Example:
        store = VectorStore()

        # Register a document and its chunks in one step
        store.insert_document(doc_id, {"filename": "notes.pdf"}, records)

        # Search
        results = store.find_similar(query_embedding, top_k=5)
        for result in results:
            print(f"Score: {result.similarity:.3f}, Text: {result.text[:50]}...")
    """

    def __init__(self, dimension: int = EMBEDDING_DIMENSION):
        """
        Initialize an empty store.

        Args:
            dimension: Required length of every stored embedding
        """
        self.dimension = dimension
        self._records: list[VectorRecord] = []
        self._documents: dict[str, Document] = {}
        self._lock = threading.Lock()

    @property
    def count(self) -> int:
        """Get the number of records in the store."""
        return len(self._records)

    cosine_similarity = staticmethod(cosine_similarity)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def _validate(self, records: list[VectorRecord]) -> None:
        for record in records:
            if len(record.embedding) != self.dimension:
                raise DimensionMismatch(self.dimension, len(record.embedding))

    def _build_document(self, doc_id: str, metadata: dict) -> Document:
        return Document(
            id=doc_id,
            filename=metadata.get("filename", ""),
            uploaded_at=metadata.get("uploaded_at") or utc_now(),
            num_chunks=metadata.get("num_chunks", 0),
            num_pages=metadata.get("num_pages", 0),
            source_path=metadata.get("source_path"),
            created_at=utc_now(),
        )

    def add_vectors(self, records: Iterable[VectorRecord]) -> int:
        """
        Append records to the store. No deduplication.

        Returns:
            Number of records added

        Raises:
            DimensionMismatch: If any embedding has the wrong length
                (nothing is added in that case)
        """
        records = list(records)
        self._validate(records)
        with self._lock:
            self._records = self._records + records
        return len(records)

    def add_document(self, doc_id: str, metadata: dict) -> Document:
        """
        Register (or replace) a document entry, stamping created_at.

        Args:
            doc_id: Document identifier
            metadata: filename, uploaded_at, num_chunks, num_pages, source_path
        """
        document = self._build_document(doc_id, metadata)
        with self._lock:
            self._documents[doc_id] = document
        return document

    def insert_document(
        self,
        doc_id: str,
        metadata: dict,
        records: Iterable[VectorRecord],
    ) -> Document:
        """
        Add a document's records and register the document atomically.

        Readers see either none of it or all of it.
        """
        records = list(records)
        self._validate(records)
        document = self._build_document(doc_id, metadata)
        with self._lock:
            self._records = self._records + records
            self._documents[doc_id] = document
        logger.info("Stored %d vectors for document %s", len(records), doc_id)
        return document

    def delete_document(self, doc_id: str) -> Document:
        """
        Remove a document and all of its records atomically.

        Returns:
            The removed Document

        Raises:
            NotFound: If the document is unknown
        """
        with self._lock:
            document = self._documents.pop(doc_id, None)
            if document is None:
                raise NotFound(doc_id)
            self._records = [r for r in self._records if r.document_id != doc_id]
        logger.info("Deleted document %s", doc_id)
        return document

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def find_similar(
        self,
        query_vector: Sequence[float],
        top_k: int = TOP_K_CHUNKS,
        filter_document_id: str | None = None,
    ) -> list[SearchResult]:
        """
        Search for the records most similar to a query vector.

        Args:
            query_vector: The embedding to search with
            top_k: Number of results to return
            filter_document_id: Only consider records of this document

        Returns:
            List of SearchResult objects, highest similarity first. Ties keep
            insertion order. Records that can't be scored (wrong dimension,
            zero vector) are skipped.
        """
        with self._lock:
            candidates = self._records

        if filter_document_id is not None:
            candidates = [r for r in candidates if r.document_id == filter_document_id]

        scored: list[tuple[float, VectorRecord]] = []
        for record in candidates:
            try:
                similarity = cosine_similarity(query_vector, record.embedding)
            except DimensionMismatch as e:
                logger.warning("Skipping record %s: %s", record.id, e)
                continue
            if math.isnan(similarity):
                logger.debug("Skipping record %s: zero vector", record.id)
                continue
            scored.append((similarity, record))

        # sorted() is stable, also with reverse=True
        scored = sorted(scored, key=lambda item: item[0], reverse=True)

        return [
            SearchResult(
                id=record.id,
                document_id=record.document_id,
                text=record.text,
                chunk_index=record.chunk_index,
                metadata=dict(record.metadata),
                similarity=similarity,
            )
            for similarity, record in scored[:max(top_k, 0)]
        ]

    def get_document_vectors(self, doc_id: str) -> list[VectorRecord]:
        """Get all records of a document, in insertion order."""
        with self._lock:
            records = self._records
        return [r for r in records if r.document_id == doc_id]

    def get_document(self, doc_id: str) -> Document | None:
        """Get a document by id, or None."""
        with self._lock:
            return self._documents.get(doc_id)

    def has_document(self, doc_id: str) -> bool:
        with self._lock:
            return doc_id in self._documents

    def list_documents(self) -> list[Document]:
        """All registered documents, oldest first."""
        with self._lock:
            return list(self._documents.values())

    def get_stats(self) -> dict:
        """
        Get statistics about the store.

        Returns:
            Dict with totalVectors and totalDocuments
        """
        with self._lock:
            return {
                "totalVectors": len(self._records),
                "totalDocuments": len(self._documents),
            }
