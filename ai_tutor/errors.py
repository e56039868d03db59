"""
Errors - Exception hierarchy for the AI Tutor.

Only three kinds of error ever reach a caller of the tutor:

- ValidationError: the caller sent something we can't work with
  (empty message, non-PDF upload, file too large, ...)
- ExtractionError: the uploaded PDF has no usable text
- NotFound: the referenced document doesn't exist

DimensionMismatch and UpstreamModelError are internal. They are raised
where the problem happens and absorbed one layer up (a skipped search
record, a fallback embedding or reply).

Exception Hierarchy:
    TutorError
    ├── ValidationError
    ├── ExtractionError
    │   └── NoExtractableText
    ├── DimensionMismatch
    ├── UpstreamModelError
    └── NotFound
"""

from __future__ import annotations

from typing import Optional


class TutorError(Exception):
    """
    Base exception for all tutor errors.

    Attributes:
        message: Human-readable error description
        details: Additional technical details (optional)
    """

    def __init__(self, message: str = "A tutor error occurred", details: Optional[str] = None):
        self.message = message
        self.details = details

        full_message = message
        if details:
            full_message = f"{message} | Details: {details}"

        super().__init__(full_message)


class ValidationError(TutorError):
    """Raised when caller input is invalid. Never retried, never falls back."""


class ExtractionError(TutorError):
    """Raised when a PDF cannot be read. Aborts ingestion."""

    def __init__(
        self,
        message: str = "Failed to extract text from PDF",
        filename: Optional[str] = None,
        details: Optional[str] = None,
    ):
        self.filename = filename
        if filename:
            message = f"{message} [{filename}]"
        super().__init__(message, details)


class NoExtractableText(ExtractionError):
    """Raised when a PDF opens fine but contains no text (e.g. scanned images)."""

    def __init__(self, filename: Optional[str] = None):
        super().__init__("PDF contains no extractable text", filename=filename)


class DimensionMismatch(TutorError):
    """
    Raised when two vectors that must have the same length don't.

    Attributes:
        expected: Length of the reference vector
        actual: Length of the offending vector
    """

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Vector dimension mismatch: expected {expected}, got {actual}")


class UpstreamModelError(TutorError):
    """
    Raised when an embedding or generation backend fails.

    Attributes:
        backend: Name of the backend that failed (e.g. "ollama")
        original_error: The underlying exception, if any
    """

    def __init__(
        self,
        backend: str,
        message: str = "Model backend failed",
        original_error: Optional[BaseException] = None,
    ):
        self.backend = backend
        self.original_error = original_error
        details = str(original_error) if original_error else None
        super().__init__(f"{message} ({backend})", details)


class NotFound(TutorError):
    """Raised when a document id is unknown."""

    def __init__(self, doc_id: str, kind: str = "Document"):
        self.doc_id = doc_id
        super().__init__(f"{kind} not found: {doc_id}")
