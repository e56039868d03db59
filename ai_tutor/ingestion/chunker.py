"""
Text Chunker - Splits text into smaller pieces for embedding.

This module handles the splitting of long extracted text into overlapping
chunks that can be embedded and retrieved independently.

Key Concepts:
- Chunk Size: Max characters per chunk (default: 1000)
- Overlap: Characters shared by consecutive chunks (default: 200)
- Why Overlap? A sentence cut at a chunk boundary still appears whole
  in one of the two neighbouring chunks

Example:
    Text: "ABCDEFGHIJ" (10 chars)
    Chunk size: 5, Overlap: 2

    Chunk 1: "ABCDE"
    Chunk 2: "DEFGH"  <- 'DE' overlaps with chunk 1
    Chunk 3: "GHIJ"   <- 'GH' overlaps with chunk 2
"""

import math
from dataclasses import dataclass, field

from ai_tutor.config import CHUNK_OVERLAP, CHUNK_SIZE

# Characters a chunk may end on when snapping to a boundary
BOUNDARY_CHARS = (".", "\n")


@dataclass
class TextChunk:
    """
    Represents a single chunk of text with metadata.

    Attributes:
        text: The chunk content (stripped)
        chunk_index: Position of this chunk (0-indexed)
        start_char: Character position where the window starts in the original text
        end_char: Character position where the window ends in the original text
        metadata: Additional metadata (filename, page, etc.)
    """
    text: str
    chunk_index: int
    start_char: int
    end_char: int
    metadata: dict = field(default_factory=dict)

    @property
    def char_count(self) -> int:
        """Return the number of characters in this chunk."""
        return len(self.text)


class TextChunker:
    """
    Splits text into overlapping chunks for embedding.

    Strategy:
    1. Take a window of chunk_size characters
    2. If the window ends mid-text, pull its end back to the last '.' or
       newline, as long as that keeps at least half the window
    3. Start the next window chunk_overlap characters before this one ended

    Example:
        chunker = TextChunker(chunk_size=1000, chunk_overlap=200)
        chunks = chunker.chunk_text("Your long text here...")
        for chunk in chunks:
            print(f"Chunk {chunk.chunk_index}: {chunk.char_count} chars")
    """

    def __init__(self, chunk_size: int = CHUNK_SIZE, chunk_overlap: int = CHUNK_OVERLAP):
        """
        Initialize the chunker with size parameters.

        Args:
            chunk_size: Maximum size of each chunk in characters
            chunk_overlap: Number of characters to overlap between chunks

        Raises:
            ValueError: If overlap >= chunk_size or sizes are invalid
        """
        if chunk_size <= 0:
            raise ValueError("Chunk size must be positive")
        if chunk_overlap < 0:
            raise ValueError("Overlap must not be negative")
        if chunk_overlap >= chunk_size:
            raise ValueError("Overlap must be less than chunk size")

        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    def _find_split_point(self, text: str, start: int, end: int) -> int:
        """
        Pull a window end back to a sentence or line boundary.

        Args:
            text: Full text
            start: Window start
            end: Hard window end (exclusive)

        Returns:
            Position just after the last boundary character in the window,
            or end if there is none in the second half of the window
        """
        boundary = max(text.rfind(char, start, end) for char in BOUNDARY_CHARS)
        if boundary != -1 and boundary >= start + self.chunk_size * 0.5:
            return boundary + 1
        return end

    def chunk_text(self, text: str, metadata: dict | None = None) -> list[TextChunk]:
        """
        Split text into overlapping chunks.

        Args:
            text: The text to chunk
            metadata: Optional metadata to attach to all chunks

        Returns:
            List of TextChunk objects (empty for blank text)
        """
        if not text or not text.strip():
            return []

        metadata = metadata or {}
        chunks = []
        start = 0
        chunk_index = 0

        while start < len(text):
            end = start + self.chunk_size

            if end >= len(text):
                # Last window - take everything remaining
                end = len(text)
            else:
                end = self._find_split_point(text, start, end)

            piece = text[start:end].strip()
            if piece:
                chunks.append(TextChunk(
                    text=piece,
                    chunk_index=chunk_index,
                    start_char=start,
                    end_char=end,
                    metadata=metadata.copy(),
                ))
                chunk_index += 1

            if end >= len(text):
                break

            next_start = end - self.chunk_overlap
            # A snapped window can be shorter than the overlap
            start = next_start if next_start > start else end

        return chunks


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def chunk_text(
    text: str,
    chunk_size: int = CHUNK_SIZE,
    chunk_overlap: int = CHUNK_OVERLAP,
) -> list[str]:
    """
    Simple function to chunk text and return just the text strings.

    Args:
        text: Text to chunk
        chunk_size: Maximum chunk size in characters
        chunk_overlap: Overlap between chunks

    Returns:
        List of chunk text strings

    Example:
        chunks = chunk_text("Your long text...", chunk_size=500)
        print(f"Created {len(chunks)} chunks")
    """
    chunker = TextChunker(chunk_size=chunk_size, chunk_overlap=chunk_overlap)
    return [chunk.text for chunk in chunker.chunk_text(text)]


def estimate_page(chunk_index: int, chunk_count: int, total_pages: int) -> int:
    """
    Guess which page a chunk came from.

    Extraction gives us one string for the whole PDF, so this spreads the
    chunks evenly over the pages. It is a rough heuristic, not a real
    page mapping.

    Returns:
        1-indexed page number (1 when the estimate rounds to 0)
    """
    if chunk_count <= 0 or total_pages <= 0:
        return 1
    return math.floor(chunk_index / chunk_count * total_pages) or 1
