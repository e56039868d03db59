"""Tests for the embedders and the fallback decorator."""

import math
import threading
import time
from unittest.mock import MagicMock

import numpy as np
import pytest

from ai_tutor.embeddings import embedder as embedder_module
from ai_tutor.embeddings.embedder import (
    BaseEmbedder,
    HashEmbedder,
    OllamaEmbedder,
    ResilientEmbedder,
    SentenceTransformerEmbedder,
    create_embedder,
)
from ai_tutor.errors import UpstreamModelError


class FailingEmbedder(BaseEmbedder):
    name = "failing"

    def __init__(self, dimension=8):
        super().__init__(dimension)
        self.calls = []

    def embed(self, text):
        self.calls.append(text)
        raise UpstreamModelError(self.name, "down")


class FixedEmbedder(BaseEmbedder):
    name = "fixed"

    def __init__(self, vector):
        super().__init__(len(vector))
        self.vector = vector

    def embed(self, text):
        return list(self.vector)


class TestHashEmbedder:
    def test_has_requested_dimension(self):
        assert len(HashEmbedder(dimension=768).embed("hello")) == 768

    def test_is_deterministic(self):
        embedder = HashEmbedder(dimension=64)
        assert embedder.embed("derivatives") == embedder.embed("derivatives")

    def test_is_unit_length(self):
        vector = HashEmbedder(dimension=64).embed("some study text")
        assert math.isclose(math.sqrt(sum(v * v for v in vector)), 1.0, rel_tol=1e-9)

    def test_different_text_gives_different_vectors(self):
        embedder = HashEmbedder(dimension=64)
        assert embedder.embed("arrays") != embedder.embed("trees")

    def test_empty_text_is_zero_vector(self):
        assert HashEmbedder(dimension=16).embed("") == [0.0] * 16

    def test_rolling_hash_wraps_to_signed_32_bit(self):
        assert HashEmbedder.rolling_hash("a") == 97
        assert HashEmbedder.rolling_hash("ab") == 97 * 31 + 98
        value = HashEmbedder.rolling_hash("a fairly long sentence that overflows")
        assert -(2 ** 31) <= value < 2 ** 31

    def test_rolling_hash_counts_utf16_units(self):
        # U+1F600 is a surrogate pair: 0xD83D, 0xDE00
        expected = ((0xD83D * 31 + 0xDE00) + 2 ** 31) % 2 ** 32 - 2 ** 31
        assert HashEmbedder.rolling_hash("\U0001F600") == expected

    def test_embed_batch_preserves_order(self):
        embedder = HashEmbedder(dimension=16)
        texts = [f"text {i}" for i in range(10)]
        assert embedder.embed_batch(texts, max_workers=4) == [embedder.embed(t) for t in texts]

    def test_embed_batch_empty(self):
        assert HashEmbedder(dimension=16).embed_batch([]) == []


class TestResilientEmbedder:
    def test_uses_primary_when_healthy(self):
        primary = FixedEmbedder([1.0, 0.0, 0.0, 0.0])
        embedder = ResilientEmbedder(primary, HashEmbedder(dimension=4))
        assert embedder.embed("x") == [1.0, 0.0, 0.0, 0.0]
        assert embedder.mode == "primary"

    def test_falls_back_on_upstream_error(self):
        fallback = HashEmbedder(dimension=8)
        embedder = ResilientEmbedder(FailingEmbedder(dimension=8), fallback)
        assert embedder.embed("hello") == fallback.embed("hello")

    def test_falls_back_on_wrong_dimension(self):
        fallback = HashEmbedder(dimension=8)
        embedder = ResilientEmbedder(FixedEmbedder([1.0, 2.0]), fallback)
        assert embedder.embed("hello") == fallback.embed("hello")

    def test_without_primary_is_fallback(self):
        embedder = ResilientEmbedder(None, HashEmbedder(dimension=8))
        assert embedder.mode == "fallback"
        assert embedder.name == "hash"
        assert len(embedder.embed("x")) == 8

    def test_batch_falls_back_per_text(self):
        primary = FailingEmbedder(dimension=8)
        embedder = ResilientEmbedder(primary, HashEmbedder(dimension=8))
        vectors = embedder.embed_batch(["a", "b", "c"], max_workers=2)
        assert len(vectors) == 3
        assert sorted(primary.calls) == ["a", "b", "c"]


class TestOllamaEmbedder:
    def test_reads_first_embedding(self):
        client = MagicMock()
        client.embed.return_value = {"embeddings": [[0.1, 0.2, 0.3]]}
        embedder = OllamaEmbedder(model="nomic-embed-text", dimension=3, client=client)

        assert embedder.embed("hi") == [0.1, 0.2, 0.3]
        client.embed.assert_called_once_with(model="nomic-embed-text", input="hi")

    def test_client_error_becomes_upstream_error(self):
        client = MagicMock()
        client.embed.side_effect = ConnectionError("refused")
        embedder = OllamaEmbedder(dimension=3, client=client)

        with pytest.raises(UpstreamModelError):
            embedder.embed("hi")

    def test_empty_response_is_upstream_error(self):
        client = MagicMock()
        client.embed.return_value = {"embeddings": [[]]}
        with pytest.raises(UpstreamModelError):
            OllamaEmbedder(dimension=3, client=client).embed("hi")

    @pytest.mark.parametrize("embedding", [
        [None, None, None],
        ["not-a-number"] * 3,
        42,
    ])
    def test_malformed_response_is_upstream_error(self, embedding):
        client = MagicMock()
        client.embed.return_value = {"embeddings": [embedding]}
        with pytest.raises(UpstreamModelError):
            OllamaEmbedder(dimension=3, client=client).embed("hi")

    def test_malformed_response_falls_back(self):
        client = MagicMock()
        client.embed.return_value = {"embeddings": [["not-a-number"] * 8]}
        fallback = HashEmbedder(dimension=8)
        embedder = ResilientEmbedder(OllamaEmbedder(dimension=8, client=client), fallback)

        assert embedder.embed("hello") == fallback.embed("hello")


class FakeModel:
    def __init__(self, dimension):
        self.dimension = dimension

    def get_sentence_embedding_dimension(self):
        return self.dimension

    def encode(self, text, convert_to_numpy=True):
        return np.asarray(HashEmbedder(dimension=self.dimension).embed(text))


class TestSentenceTransformerEmbedder:
    def test_load_failure_is_cached(self, monkeypatch):
        loads = []

        def broken_model(name):
            loads.append(name)
            raise OSError("model not available offline")

        monkeypatch.setattr(embedder_module, "SentenceTransformer", broken_model)
        embedder = SentenceTransformerEmbedder(model_name="missing-model", dimension=8)

        with pytest.raises(UpstreamModelError):
            embedder.embed("a")
        with pytest.raises(UpstreamModelError):
            embedder.embed("b")
        assert loads == ["missing-model"]

    def test_model_is_loaded_once_across_threads(self, monkeypatch):
        loads = []
        lock = threading.Lock()

        def slow_model(name):
            with lock:
                loads.append(name)
            time.sleep(0.05)
            return FakeModel(dimension=8)

        monkeypatch.setattr(embedder_module, "SentenceTransformer", slow_model)
        embedder = SentenceTransformerEmbedder(model_name="shared-model", dimension=8)

        vectors = embedder.embed_batch([f"text {i}" for i in range(8)], max_workers=4)

        assert len(vectors) == 8
        assert loads == ["shared-model"]


class TestCreateEmbedder:
    def test_hash_backend_has_no_primary(self):
        embedder = create_embedder("hash", dimension=8)
        assert embedder.primary is None
        assert embedder.mode == "fallback"

    def test_ollama_backend(self):
        embedder = create_embedder("ollama", dimension=8)
        assert isinstance(embedder.primary, OllamaEmbedder)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_embedder("word2vec")
