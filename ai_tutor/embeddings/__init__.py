"""
Embeddings module - Handles embedding generation and vector storage.

This module is responsible for:
1. Converting text chunks to embeddings (with a deterministic fallback)
2. Storing and searching embeddings in memory
"""

from .embedder import (
    BaseEmbedder,
    HashEmbedder,
    OllamaEmbedder,
    ResilientEmbedder,
    SentenceTransformerEmbedder,
    create_embedder,
)
from .vector_store import Document, SearchResult, VectorRecord, VectorStore, cosine_similarity

__all__ = [
    "BaseEmbedder",
    "HashEmbedder",
    "OllamaEmbedder",
    "ResilientEmbedder",
    "SentenceTransformerEmbedder",
    "create_embedder",
    "Document",
    "SearchResult",
    "VectorRecord",
    "VectorStore",
    "cosine_similarity",
]
