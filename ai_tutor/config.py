"""
Configuration settings for the AI Tutor application.

This file centralizes all configuration so you can easily adjust parameters.
Every value can be overridden with an environment variable of the same name
(paths use an AI_TUTOR_ prefix).
"""

import os
from pathlib import Path


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    return int(value) if value else default


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    return float(value) if value else default


def _env_path(name: str, default: Path | None) -> Path | None:
    value = os.environ.get(name)
    return Path(value) if value else default


# =============================================================================
# PATH CONFIGURATION
# =============================================================================

# Base directory (where this project lives)
BASE_DIR = Path(__file__).parent.parent

# Data storage directory
DATA_DIR = _env_path("AI_TUTOR_DATA_DIR", BASE_DIR / "data")

# Uploaded PDFs are copied here; the document owns its file
UPLOAD_DIR = _env_path("AI_TUTOR_UPLOAD_DIR", DATA_DIR / "uploads")

# Optional JSON mirror of documents, conversations and quizzes.
# Disabled unless AI_TUTOR_MIRROR_DIR is set.
MIRROR_DIR = _env_path("AI_TUTOR_MIRROR_DIR", None)

# =============================================================================
# UPLOAD CONFIGURATION
# =============================================================================

# 50 MB upload limit
MAX_UPLOAD_BYTES = _env_int("MAX_UPLOAD_BYTES", 50 * 1024 * 1024)

# =============================================================================
# CHUNKING CONFIGURATION
# =============================================================================

# Chunk size in characters
CHUNK_SIZE = _env_int("CHUNK_SIZE", 1000)

# Overlap between consecutive chunks in characters
CHUNK_OVERLAP = _env_int("CHUNK_OVERLAP", 200)

# =============================================================================
# EMBEDDING CONFIGURATION
# =============================================================================

# "sentence-transformers", "ollama" or "hash" (deterministic fallback only)
EMBEDDING_BACKEND = os.environ.get("EMBEDDING_BACKEND", "sentence-transformers")

# sentence-transformers model; all-mpnet-base-v2 creates 768-dimensional vectors
EMBEDDING_MODEL = os.environ.get("EMBEDDING_MODEL", "all-mpnet-base-v2")

# Ollama embedding model; nomic-embed-text is also 768-dimensional
OLLAMA_EMBEDDING_MODEL = os.environ.get("OLLAMA_EMBEDDING_MODEL", "nomic-embed-text")

# Fixed dimension of every vector in the store
EMBEDDING_DIMENSION = _env_int("EMBEDDING_DIMENSION", 768)

# Max parallel embedding calls during ingestion
EMBEDDING_CONCURRENCY = _env_int("EMBEDDING_CONCURRENCY", 4)

# =============================================================================
# OLLAMA CONFIGURATION
# =============================================================================

# "ollama" or "fallback" (canned replies only)
GENERATION_BACKEND = os.environ.get("GENERATION_BACKEND", "ollama")

# Default Ollama chat model
OLLAMA_MODEL = os.environ.get("OLLAMA_MODEL", "llama3.2")

# Ollama API base URL (default local installation)
OLLAMA_BASE_URL = os.environ.get("OLLAMA_BASE_URL", "http://localhost:11434")

# Seconds to wait for any model call before falling back
MODEL_TIMEOUT = _env_float("MODEL_TIMEOUT", 30.0)

# =============================================================================
# RAG CONFIGURATION
# =============================================================================

# Number of chunks retrieved for chat and search
TOP_K_CHUNKS = _env_int("TOP_K_CHUNKS", 5)

# Quizzes get a wider context
QUIZ_TOP_K = _env_int("QUIZ_TOP_K", 8)

# How many previous conversation turns go into the chat prompt
HISTORY_TURNS = _env_int("HISTORY_TURNS", 4)

DEFAULT_QUIZ_QUESTIONS = _env_int("DEFAULT_QUIZ_QUESTIONS", 5)
MAX_QUIZ_QUESTIONS = _env_int("MAX_QUIZ_QUESTIONS", 20)

# Length of the passage preview returned with chat sources
SOURCE_PREVIEW_CHARS = _env_int("SOURCE_PREVIEW_CHARS", 200)

# =============================================================================
# SERVER CONFIGURATION
# =============================================================================

HOST = os.environ.get("HOST", "0.0.0.0")
PORT = _env_int("PORT", 8080)

CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get(
        "CORS_ORIGIN", "http://localhost:3000,http://localhost:5173"
    ).split(",")
    if origin.strip()
]

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

# =============================================================================
# LLM PROMPT TEMPLATES
# =============================================================================

SYSTEM_PROMPT = """You are an intelligent AI tutor helping students learn. Answer questions based on the provided study materials when available.

IMPORTANT RULES:
1. Prefer the provided study material over general knowledge
2. When you use the study material, cite it by its number, e.g. [2]
3. If the material doesn't cover the question, say so and give general guidance
4. Explain step by step and use examples when helpful
5. Be encouraging and supportive"""

# Template for chat; {context} and {history} may be empty
CHAT_PROMPT_TEMPLATE = """{context}{history}
Student question: {question}

Provide a clear, helpful, and educational response. If the answer is in the study materials, cite specific sources. If not, provide general guidance based on your knowledge."""

# Template for quiz generation; the reply must be a bare JSON array
QUIZ_PROMPT_TEMPLATE = """Generate a {num_questions}-question quiz on the topic: "{topic}"{context}

Create a JSON array with questions in this exact format:
[
  {{
    "id": 1,
    "type": "mcq",
    "question": "Question text here",
    "options": ["Option A", "Option B", "Option C", "Option D"],
    "answer": "Option A",
    "explanation": "Why this answer is correct"
  }},
  {{
    "id": 2,
    "type": "short",
    "question": "Question text here",
    "answer": "Expected answer",
    "explanation": "Explanation here"
  }}
]

Mix question types (mcq and short answer). Base questions on the study material if provided. Return ONLY valid JSON, no additional text."""
