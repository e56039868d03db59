"""
AI Tutor Agent - A RAG-based tutor for your own study materials

This package provides:
- PDF ingestion and text extraction
- Text chunking for optimal retrieval
- Embedding generation (sentence-transformers / Ollama, with a hash fallback)
- In-memory vector storage with cosine search
- Chat answers and quiz generation (Ollama, with a canned fallback)
- CLI and Web interfaces
"""

__version__ = "1.0.0"
