"""
Tutor Pipeline - The application service behind every interface.

This is a high-level class that orchestrates the full RAG process:
1. Upload: PDF -> chunks -> embeddings -> vector store
2. Chat: question -> retrieve passages -> generate reply
3. Quiz: topic -> retrieve passages -> generate questions
4. Search, listing, deletion and health

The web app and the CLI are thin layers over this class. Nothing here is a
global: build_pipeline() wires one instance from config, tests wire their
own with a fresh store and fallback backends.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from ai_tutor.config import (
    DEFAULT_QUIZ_QUESTIONS,
    EMBEDDING_DIMENSION,
    MAX_QUIZ_QUESTIONS,
    MIRROR_DIR,
    SOURCE_PREVIEW_CHARS,
    TOP_K_CHUNKS,
    UPLOAD_DIR,
)
from ai_tutor.embeddings.embedder import BaseEmbedder, create_embedder
from ai_tutor.embeddings.vector_store import SearchResult, VectorStore, utc_now
from ai_tutor.errors import ValidationError
from ai_tutor.ingestion.pipeline import DocumentIngestor, IngestionResult
from ai_tutor.logging_config import get_logger
from ai_tutor.rag.generator import BaseGenerator, create_generator
from ai_tutor.rag.quiz import Quiz
from ai_tutor.rag.retriever import Retriever
from ai_tutor.storage.mirror import NullMirror, create_mirror

logger = get_logger(__name__)


def preview(text: str, limit: int = SOURCE_PREVIEW_CHARS) -> str:
    """First `limit` characters, with '...' only when something was cut."""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def _mode(component) -> str:
    return getattr(component, "mode", "primary")


class TutorPipeline:
    """
    Complete tutor pipeline.

    Example:
        pipeline = build_pipeline()
        pipeline.upload(pdf_bytes, "notes.pdf")
        answer = pipeline.chat("What is a derivative?")
        print(answer["reply"])
    """

    def __init__(
        self,
        vector_store: VectorStore,
        embedder: BaseEmbedder,
        generator: BaseGenerator,
        ingestor: DocumentIngestor | None = None,
        mirror: NullMirror | None = None,
    ):
        """
        Initialize the pipeline.

        Args:
            vector_store: The one store shared by every operation
            embedder: Used for both indexing and queries
            generator: Chat and quiz generation
            ingestor: Upload handling (built from config if not provided)
            mirror: Side copy of activity (disabled if not provided)
        """
        self.vector_store = vector_store
        self.embedder = embedder
        self.generator = generator
        self.retriever = Retriever(embedder, vector_store)
        self.ingestor = ingestor or DocumentIngestor(vector_store, embedder)
        self.mirror = mirror or NullMirror()

    # -------------------------------------------------------------------------
    # Documents
    # -------------------------------------------------------------------------

    def upload(self, data: bytes, filename: str, content_type: str | None = None) -> IngestionResult:
        """Ingest a PDF and mirror its document entry."""
        result = self.ingestor.ingest(data, filename, content_type)

        document = self.vector_store.get_document(result.doc_id)
        if document is not None:
            summary = document.to_summary()
            summary.pop("id")
            self.mirror.upsert_document(result.doc_id, summary)
        return result

    def list_documents(self) -> dict:
        stats = self.vector_store.get_stats()
        return {
            "documents": [doc.to_summary() for doc in self.vector_store.list_documents()],
            "total": stats["totalDocuments"],
        }

    def delete_document(self, doc_id: str) -> None:
        """
        Delete a document, its vectors and its saved file.

        Raises:
            NotFound: If the document is unknown
        """
        document = self.vector_store.delete_document(doc_id)

        if document.source_path:
            try:
                Path(document.source_path).unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Could not delete stored file %s: %s", document.source_path, e)

        self.mirror.delete_document(doc_id)

    # -------------------------------------------------------------------------
    # Retrieval + generation
    # -------------------------------------------------------------------------

    def chat(
        self,
        message: str,
        doc_id: str | None = None,
        history: Sequence[dict] | None = None,
        user_id: str | None = None,
    ) -> dict:
        """
        Answer a question using the most relevant passages.

        Returns:
            {"reply", "sources": [{"text", "similarity", "filename"}], "usedRAG"}

        Raises:
            ValidationError: If the message is blank
            NotFound: If doc_id is given but unknown
        """
        if not message or not message.strip():
            raise ValidationError("Message is required")

        passages = self.retriever.search(message, top_k=TOP_K_CHUNKS, doc_id=doc_id)
        reply = self.generator.chat_response(message, passages, history)

        self.mirror.record_conversation(
            user_id or "anonymous",
            message,
            reply,
            [p.text for p in passages],
        )

        return {
            "reply": reply,
            "sources": [
                {
                    "text": preview(p.text),
                    "similarity": p.similarity,
                    "filename": p.filename,
                }
                for p in passages
            ],
            "usedRAG": len(passages) > 0,
        }

    def generate_quiz(
        self,
        topic: str,
        doc_id: str | None = None,
        num_questions: int = DEFAULT_QUIZ_QUESTIONS,
    ) -> dict:
        """
        Generate a quiz on a topic from the study materials.

        Returns:
            {"quizId", "topic", "questions", "sourceCount"}

        Raises:
            ValidationError: If the topic is blank or the size is out of range
            NotFound: If doc_id is given but unknown
        """
        if not topic or not topic.strip():
            raise ValidationError("Topic is required")
        if not 1 <= num_questions <= MAX_QUIZ_QUESTIONS:
            raise ValidationError(f"numQuestions must be between 1 and {MAX_QUIZ_QUESTIONS}")

        passages = self.retriever.retrieve_for_topic(topic, doc_id=doc_id)
        quiz = Quiz(topic=topic, questions=self.generator.generate_quiz(topic, passages, num_questions))
        questions = quiz.questions_as_dicts()

        self.mirror.record_quiz(quiz.quiz_id, topic, questions, num_questions)

        return {
            "quizId": quiz.quiz_id,
            "topic": topic,
            "questions": questions,
            "sourceCount": len(passages),
        }

    def search(self, query: str, top_k: int = TOP_K_CHUNKS, doc_id: str | None = None) -> dict:
        """
        Raw semantic search.

        Returns:
            {"query", "results": [{"text", "similarity", "metadata", "documentId"}]}
        """
        if top_k < 1:
            raise ValidationError("topK must be at least 1")

        results: list[SearchResult] = self.retriever.search(query, top_k=top_k, doc_id=doc_id)
        return {
            "query": query,
            "results": [
                {
                    "text": r.text,
                    "similarity": r.similarity,
                    "metadata": r.metadata,
                    "documentId": r.document_id,
                }
                for r in results
            ],
        }

    def health(self) -> dict:
        return {
            "status": "ok",
            "timestamp": utc_now(),
            "vectorStore": self.vector_store.get_stats(),
            "ai": {
                "generation": "enabled" if _mode(self.generator) == "primary" else "fallback mode",
                "embeddings": "enabled" if _mode(self.embedder) == "primary" else "fallback mode",
            },
            "mirror": "enabled" if self.mirror.enabled else "disabled",
        }

    def close(self) -> None:
        self.mirror.close()


def build_pipeline(
    embedding_backend: str | None = None,
    generation_backend: str | None = None,
    upload_dir: str | Path | None = None,
    mirror_dir: str | Path | None = None,
) -> TutorPipeline:
    """
    Assemble a pipeline from config. Arguments override config values.
    """
    vector_store = VectorStore(dimension=EMBEDDING_DIMENSION)
    embedder = create_embedder(embedding_backend, dimension=EMBEDDING_DIMENSION)
    generator = create_generator(generation_backend)
    ingestor = DocumentIngestor(vector_store, embedder, upload_dir=upload_dir or UPLOAD_DIR)
    mirror = create_mirror(mirror_dir or MIRROR_DIR)
    return TutorPipeline(vector_store, embedder, generator, ingestor=ingestor, mirror=mirror)
