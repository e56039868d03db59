"""
Web Interface - FastAPI application.

Routes:
    GET    /health              - Health check + store stats
    POST   /upload              - Upload a PDF (multipart field "file")
    POST   /chat                - Chat with the tutor
    POST   /generate-quiz       - Generate a quiz on a topic
    GET    /documents           - List uploaded documents
    DELETE /documents/{doc_id}  - Delete a document
    POST   /search              - Raw semantic search

Run with:
    python -m ai_tutor serve
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, File, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ai_tutor.config import CORS_ORIGINS, DEFAULT_QUIZ_QUESTIONS, TOP_K_CHUNKS
from ai_tutor.errors import ExtractionError, NotFound, TutorError, ValidationError
from ai_tutor.logging_config import get_logger
from ai_tutor.rag.pipeline import TutorPipeline, build_pipeline

logger = get_logger(__name__)


# =============================================================================
# REQUEST MODELS
# =============================================================================


class HistoryTurn(BaseModel):
    role: str = "user"
    content: str = ""


class ChatRequest(BaseModel):
    message: str
    docId: Optional[str] = None
    userId: Optional[str] = None
    history: list[HistoryTurn] = Field(default_factory=list)


class QuizRequest(BaseModel):
    topic: str
    docId: Optional[str] = None
    numQuestions: int = DEFAULT_QUIZ_QUESTIONS


class SearchRequest(BaseModel):
    query: str
    topK: int = TOP_K_CHUNKS
    docId: Optional[str] = None


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================


def _error_response(status_code: int, exc: TutorError) -> JSONResponse:
    payload = {"error": exc.message}
    if exc.details:
        payload["details"] = exc.details
    return JSONResponse(status_code=status_code, content=payload)


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return _error_response(400, exc)


async def extraction_error_handler(request: Request, exc: ExtractionError) -> JSONResponse:
    logger.warning("Extraction failed for %s: %s", request.url.path, exc)
    return _error_response(422, exc)


async def not_found_handler(request: Request, exc: NotFound) -> JSONResponse:
    return _error_response(404, exc)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the full traceback, return a generic 500 without internals."""
    logger.exception(
        "Unhandled exception during request: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# =============================================================================
# APPLICATION
# =============================================================================


def create_app(pipeline: TutorPipeline | None = None) -> FastAPI:
    """
    Build the FastAPI app around a pipeline.

    Args:
        pipeline: Pipeline to serve (built from config if not provided)
    """
    tutor = pipeline or build_pipeline()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        tutor.close()

    app = FastAPI(
        title="AI Tutor Agent",
        version="1.0.0",
        description="Upload PDFs, chat with them and generate quizzes.",
        lifespan=lifespan,
    )
    app.state.pipeline = tutor

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(ExtractionError, extraction_error_handler)
    app.add_exception_handler(NotFound, not_found_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.get("/health")
    def health() -> dict:
        return tutor.health()

    @app.post("/upload")
    def upload(file: Optional[UploadFile] = File(None)) -> dict:
        if file is None:
            raise ValidationError("No file uploaded")

        data = file.file.read()
        result = tutor.upload(data, file.filename or "upload.pdf", file.content_type)
        return {
            "success": True,
            **result.to_dict(),
            "message": f"PDF processed successfully: {result.chunk_count} chunks indexed",
        }

    @app.post("/chat")
    def chat(request: ChatRequest) -> dict:
        return tutor.chat(
            request.message,
            doc_id=request.docId or None,
            history=[turn.model_dump() for turn in request.history],
            user_id=request.userId,
        )

    @app.post("/generate-quiz")
    def generate_quiz(request: QuizRequest) -> dict:
        return tutor.generate_quiz(
            request.topic,
            doc_id=request.docId or None,
            num_questions=request.numQuestions,
        )

    @app.get("/documents")
    def documents() -> dict:
        return tutor.list_documents()

    @app.delete("/documents/{doc_id}")
    def delete_document(doc_id: str) -> dict:
        tutor.delete_document(doc_id)
        return {"success": True, "message": "Document deleted"}

    @app.post("/search")
    def search(request: SearchRequest) -> dict:
        return tutor.search(request.query, top_k=request.topK, doc_id=request.docId or None)

    return app
