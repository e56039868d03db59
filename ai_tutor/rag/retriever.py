"""
Retriever - Finds relevant chunks for a given query.

This module handles the retrieval part of RAG:
1. Takes a user question (or quiz topic)
2. Converts it to an embedding
3. Searches the vector store for similar chunks
4. Returns the best passages, highest similarity first

Key Concept:
This is the "R" in RAG - Retrieval!
Chat and quiz generation both read through here, so the quality of
retrieval directly affects the quality of answers.
"""

from ai_tutor.config import QUIZ_TOP_K, TOP_K_CHUNKS
from ai_tutor.embeddings.embedder import BaseEmbedder
from ai_tutor.embeddings.vector_store import SearchResult, VectorStore
from ai_tutor.errors import NotFound, ValidationError


class Retriever:
    """
    Retrieves relevant passages from the vector store.

    Every call embeds the query again; nothing is cached.

    Example:
        retriever = Retriever(embedder, store)
        results = retriever.search("What is a derivative?")
        print(f"Found {len(results)} relevant chunks")
        print(format_passages(results))
    """

    def __init__(
        self,
        embedder: BaseEmbedder,
        vector_store: VectorStore,
        top_k: int = TOP_K_CHUNKS,
    ):
        """
        Initialize the retriever.

        Args:
            embedder: Embedder used for queries (same one used for indexing!)
            vector_store: Store to search
            top_k: Default number of passages to return
        """
        self.embedder = embedder
        self.vector_store = vector_store
        self.top_k = top_k

    def search(
        self,
        query: str,
        top_k: int | None = None,
        doc_id: str | None = None,
    ) -> list[SearchResult]:
        """
        Retrieve the passages most relevant to a query.

        Args:
            query: The user's question
            top_k: Override default number of results
            doc_id: Only search this document

        Returns:
            List of SearchResult, highest similarity first

        Raises:
            ValidationError: If the query is blank
            NotFound: If doc_id is given but unknown
        """
        if not query or not query.strip():
            raise ValidationError("Query is required")
        if doc_id and not self.vector_store.has_document(doc_id):
            raise NotFound(doc_id)

        query_embedding = self.embedder.embed(query)
        return self.vector_store.find_similar(
            query_embedding,
            top_k=self.top_k if top_k is None else top_k,
            filter_document_id=doc_id or None,
        )

    def retrieve_for_topic(self, topic: str, doc_id: str | None = None) -> list[SearchResult]:
        """
        Retrieve context for a quiz topic.

        Quizzes use a wider context than chat answers.
        """
        return self.search(topic, top_k=QUIZ_TOP_K, doc_id=doc_id)


def format_passages(passages: list[SearchResult]) -> str:
    """
    Format passages as numbered citations for a prompt.

    Example:
        [1] First passage text

        [2] Second passage text
    """
    return "\n\n".join(f"[{i}] {passage.text}" for i, passage in enumerate(passages, 1))
