"""
Embedder - Converts text to vector embeddings.

This module turns text into fixed-size numerical vectors (embeddings).
There are two kinds of embedder:

- Real backends: sentence-transformers (local model) or Ollama (HTTP)
- A deterministic hash-based fallback that needs no model at all

ResilientEmbedder puts them together: it asks the real backend first and
quietly switches to the fallback for that call when the backend fails.
Ingestion never aborts because of an embedding problem.

Key Concepts:
- Every vector in the store has the same dimension (768 by default)
- We use the same backend for storing and querying (important!)
- Fallback vectors are NOT semantically meaningful, they just keep the
  pipeline working end-to-end

Example:
    embedder = create_embedder()

    # Single text
    vector = embedder.embed("What is a derivative?")
    print(len(vector))  # 768

    # Multiple texts, embedded in parallel
    vectors = embedder.embed_batch(["text1", "text2", "text3"])
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import ollama
from sentence_transformers import SentenceTransformer

from ai_tutor.config import (
    EMBEDDING_BACKEND,
    EMBEDDING_CONCURRENCY,
    EMBEDDING_DIMENSION,
    EMBEDDING_MODEL,
    MODEL_TIMEOUT,
    OLLAMA_BASE_URL,
    OLLAMA_EMBEDDING_MODEL,
)
from ai_tutor.errors import UpstreamModelError
from ai_tutor.logging_config import get_logger

logger = get_logger(__name__)


class BaseEmbedder:
    """
    Common interface for all embedders.

    Subclasses implement embed(); embed_batch() runs it over a bounded
    thread pool because each text is embedded independently.
    """

    name = "base"

    def __init__(self, dimension: int = EMBEDDING_DIMENSION):
        self.dimension = dimension

    def embed(self, text: str) -> list[float]:
        raise NotImplementedError

    def embed_batch(
        self,
        texts: list[str],
        max_workers: int = EMBEDDING_CONCURRENCY,
    ) -> list[list[float]]:
        """
        Embed many texts, preserving input order.

        Args:
            texts: Texts to embed
            max_workers: Max number of concurrent embed() calls

        Returns:
            List of embedding vectors (one per text)
        """
        if not texts:
            return []
        if max_workers <= 1 or len(texts) == 1:
            return [self.embed(text) for text in texts]

        with ThreadPoolExecutor(max_workers=min(max_workers, len(texts))) as pool:
            return list(pool.map(self.embed, texts))


class HashEmbedder(BaseEmbedder):
    """
    Deterministic fallback embedder.

    Derives a 32-bit rolling hash of the text and spreads it over the
    vector with sine waves, then L2-normalises. Identical text always gives
    an identical vector and no external service is needed.
    """

    name = "hash"

    @staticmethod
    def rolling_hash(text: str) -> int:
        """
        hash = hash * 31 + code_unit, wrapped to a signed 32-bit integer.

        Iterates UTF-16 code units so characters outside the BMP count as
        two units.
        """
        data = text.encode("utf-16-le", errors="surrogatepass")
        value = 0
        for i in range(0, len(data), 2):
            unit = data[i] | (data[i + 1] << 8)
            value = (value * 31 + unit) & 0xFFFFFFFF
        if value >= 0x80000000:
            value -= 0x100000000
        return value

    def embed(self, text: str) -> list[float]:
        value = self.rolling_hash(text or "")
        vector = np.sin(value * np.arange(1, self.dimension + 1, dtype=np.float64)) * 0.1

        norm = np.linalg.norm(vector)
        if norm == 0:
            # Empty text hashes to 0 and sin(0) is 0 everywhere
            return vector.tolist()
        return (vector / norm).tolist()


class SentenceTransformerEmbedder(BaseEmbedder):
    """
    Converts text to embeddings with a local sentence-transformers model.

    The model is loaded lazily on first use. Any failure while loading or
    encoding (missing model, no network for the first download, ...) is
    reported as UpstreamModelError so the caller can fall back.

    IMPORTANT: Always use the same model for indexing and querying!
    """

    name = "sentence-transformers"

    def __init__(self, model_name: str | None = None, dimension: int = EMBEDDING_DIMENSION):
        super().__init__(dimension)
        self.model_name = model_name or EMBEDDING_MODEL
        self._model = None  # Lazy loading
        self._load_error: Exception | None = None
        self._load_lock = threading.Lock()

    @property
    def model(self) -> SentenceTransformer:
        """
        Lazy-load the model on first use. A failed load is not retried.

        embed_batch calls this from several threads; only one of them loads.
        """
        if self._model is None and self._load_error is None:
            with self._load_lock:
                if self._model is None and self._load_error is None:
                    self._load_model()
        if self._load_error is not None:
            raise UpstreamModelError(self.name, "Embedding model unavailable", self._load_error)
        return self._model

    def _load_model(self) -> None:
        try:
            logger.info("Loading embedding model: %s", self.model_name)
            model = SentenceTransformer(self.model_name)
        except Exception as e:
            logger.warning("Failed to load embedding model %s: %s", self.model_name, e)
            self._load_error = e
            return
        logger.info(
            "Model loaded! Embedding dimension: %s",
            model.get_sentence_embedding_dimension(),
        )
        self._model = model

    def embed(self, text: str) -> list[float]:
        model = self.model
        try:
            embedding = model.encode(text, convert_to_numpy=True)
        except Exception as e:
            raise UpstreamModelError(self.name, "Failed to encode text", e) from e
        return embedding.tolist()


class OllamaEmbedder(BaseEmbedder):
    """
    Converts text to embeddings through the Ollama embed API.

    The client carries an explicit timeout so a hung server costs at most
    MODEL_TIMEOUT seconds per chunk before we fall back.
    """

    name = "ollama"

    def __init__(
        self,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float = MODEL_TIMEOUT,
        dimension: int = EMBEDDING_DIMENSION,
        client: ollama.Client | None = None,
    ):
        super().__init__(dimension)
        self.model = model or OLLAMA_EMBEDDING_MODEL
        self._client = client or ollama.Client(host=base_url or OLLAMA_BASE_URL, timeout=timeout)

    def embed(self, text: str) -> list[float]:
        try:
            response = self._client.embed(model=self.model, input=text)
            embedding = response["embeddings"][0]
        except Exception as e:
            raise UpstreamModelError(self.name, "Embedding request failed", e) from e

        if not embedding:
            raise UpstreamModelError(self.name, "Embedding response was empty")
        try:
            return [float(value) for value in embedding]
        except (TypeError, ValueError) as e:
            raise UpstreamModelError(self.name, "Embedding response was malformed", e) from e


class ResilientEmbedder(BaseEmbedder):
    """
    Real backend first, deterministic fallback on failure.

    A vector of the wrong length counts as a failed response too, so the
    store never receives a malformed embedding.

    Example:
        embedder = ResilientEmbedder(OllamaEmbedder(), HashEmbedder())
        vector = embedder.embed("text")  # hash vector if Ollama is down
    """

    def __init__(self, primary: BaseEmbedder | None, fallback: BaseEmbedder):
        super().__init__(fallback.dimension)
        self.primary = primary
        self.fallback = fallback

    @property
    def name(self) -> str:
        return self.primary.name if self.primary else self.fallback.name

    @property
    def mode(self) -> str:
        """'primary' when a real backend is configured, else 'fallback'."""
        return "primary" if self.primary else "fallback"

    def embed(self, text: str) -> list[float]:
        if self.primary is None:
            return self.fallback.embed(text)

        try:
            vector = self.primary.embed(text)
            if len(vector) != self.dimension:
                raise UpstreamModelError(
                    self.primary.name,
                    f"Expected {self.dimension}-dimensional embedding, got {len(vector)}",
                )
            return vector
        except UpstreamModelError as e:
            logger.warning("Embedding backend failed, using fallback: %s", e)
            return self.fallback.embed(text)


# =============================================================================
# FACTORY
# =============================================================================

def create_embedder(
    backend: str | None = None,
    dimension: int = EMBEDDING_DIMENSION,
) -> ResilientEmbedder:
    """
    Build the configured embedder, always wrapped with the hash fallback.

    Args:
        backend: "sentence-transformers", "ollama" or "hash"
        dimension: Vector dimension of the store

    Returns:
        A ResilientEmbedder
    """
    backend = (backend or EMBEDDING_BACKEND).lower()
    fallback = HashEmbedder(dimension=dimension)

    if backend == "sentence-transformers":
        primary: BaseEmbedder | None = SentenceTransformerEmbedder(dimension=dimension)
    elif backend == "ollama":
        primary = OllamaEmbedder(dimension=dimension)
    elif backend == "hash":
        primary = None
    else:
        raise ValueError(f"Unknown embedding backend: {backend}")

    if primary is None:
        logger.warning("No embedding backend configured. Using fallback embeddings.")
    else:
        logger.info("Embedding backend: %s", primary.name)
    return ResilientEmbedder(primary, fallback)
