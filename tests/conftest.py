"""Shared fixtures for the AI Tutor test suite."""

import fitz
import pytest
from fastapi.testclient import TestClient

from ai_tutor.embeddings.embedder import HashEmbedder, ResilientEmbedder
from ai_tutor.embeddings.vector_store import VectorRecord, VectorStore, make_record_id
from ai_tutor.ingestion.pipeline import DocumentIngestor
from ai_tutor.rag.generator import FallbackGenerator, ResilientGenerator
from ai_tutor.rag.pipeline import TutorPipeline
from ai_tutor.storage.mirror import JsonFileMirror

# Small vectors keep the tests fast; nothing depends on 768
DIMENSION = 32


# ---------------------------------------------------------------------------
# Fake PDFs built with PyMuPDF
# ---------------------------------------------------------------------------


def make_pdf(*pages: str) -> bytes:
    """Build an in-memory PDF with one page per text argument."""
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_textbox(fitz.Rect(50, 50, 550, 800), text, fontsize=9)
    data = doc.tobytes()
    doc.close()
    return data


def make_locked_pdf(text: str) -> bytes:
    """Build a one-page PDF that needs a user password to open."""
    doc = fitz.open()
    doc.new_page().insert_textbox(fitz.Rect(50, 50, 550, 800), text, fontsize=9)
    data = doc.tobytes(
        encryption=fitz.PDF_ENCRYPT_AES_256,
        owner_pw="owner-secret",
        user_pw="user-secret",
    )
    doc.close()
    return data


ARRAYS_PAGE = (
    "An array stores elements in contiguous memory. "
    "Each element is reached by its index in constant time. "
    "Inserting in the middle of an array shifts the following elements."
)

TREES_PAGE = (
    "A binary tree is made of nodes. Each node has at most two children. "
    "Traversals visit nodes in preorder, inorder or postorder."
)


@pytest.fixture()
def sample_pdf() -> bytes:
    return make_pdf(ARRAYS_PAGE, TREES_PAGE)


@pytest.fixture()
def blank_pdf() -> bytes:
    return make_pdf("")


# ---------------------------------------------------------------------------
# Core components
# ---------------------------------------------------------------------------


@pytest.fixture()
def embedder():
    """Fallback-only embedder: deterministic, no model needed."""
    return ResilientEmbedder(None, HashEmbedder(dimension=DIMENSION))


@pytest.fixture()
def generator():
    """Fallback-only generator: canned replies, no Ollama needed."""
    return ResilientGenerator(None, FallbackGenerator())


@pytest.fixture()
def store():
    return VectorStore(dimension=DIMENSION)


def make_record(doc_id: str, index: int, embedding, text: str = "", **metadata) -> VectorRecord:
    return VectorRecord(
        id=make_record_id(doc_id, index),
        document_id=doc_id,
        embedding=list(embedding),
        text=text or f"{doc_id} chunk {index}",
        chunk_index=index,
        metadata={"filename": f"{doc_id}.pdf", "page": 1, "totalPages": 1, **metadata},
    )


@pytest.fixture()
def ingestor(store, embedder, tmp_path):
    return DocumentIngestor(store, embedder, upload_dir=tmp_path / "uploads", max_workers=2)


@pytest.fixture()
def pipeline(store, embedder, generator, ingestor, tmp_path):
    """
    TutorPipeline with fallback backends and a synchronous JSON mirror.

    Nothing here touches Ollama, sentence-transformers or the network.
    """
    return TutorPipeline(
        store,
        embedder,
        generator,
        ingestor=ingestor,
        mirror=JsonFileMirror(tmp_path / "mirror"),
    )


@pytest.fixture()
def test_client(pipeline):
    from ai_tutor.interfaces.web_app import create_app

    app = create_app(pipeline)
    with TestClient(app) as client:
        yield client
