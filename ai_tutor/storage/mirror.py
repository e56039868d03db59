"""
Mirror - Optional best-effort copy of documents, conversations and quizzes.

The in-memory vector store is the source of truth. A mirror only keeps a
side copy so that uploads, chat turns and generated quizzes can be looked
at later. Writes happen in the background and their failures are logged,
never raised to the caller.

Layout of JsonFileMirror:
    <root>/documents/<doc_id>.json
    <root>/conversations.jsonl
    <root>/quizzes/<quiz_id>.json
"""

from __future__ import annotations

import json
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path

from ai_tutor.embeddings.vector_store import utc_now
from ai_tutor.logging_config import get_logger

logger = get_logger(__name__)


class NullMirror:
    """Mirror that stores nothing. Used when mirroring is not configured."""

    enabled = False

    def upsert_document(self, doc_id: str, metadata: dict) -> None:
        pass

    def delete_document(self, doc_id: str) -> None:
        pass

    def record_conversation(self, user_id: str, message: str, reply: str, contexts: list[str]) -> None:
        pass

    def record_quiz(self, quiz_id: str, topic: str, questions: list[dict], num_questions: int) -> None:
        pass

    def close(self) -> None:
        pass


class JsonFileMirror(NullMirror):
    """
    Writes mirror entries as JSON files under a root directory.

    Example:
        mirror = JsonFileMirror("data/mirror")
        mirror.record_quiz("abc", "Arrays", questions, 5)
    """

    enabled = True

    def __init__(self, root: str | Path):
        self.root = Path(root)
        self.documents_dir = self.root / "documents"
        self.quizzes_dir = self.root / "quizzes"
        self.conversations_path = self.root / "conversations.jsonl"
        self._append_lock = threading.Lock()

    def _write_json(self, path: Path, data: dict) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2, default=str)

    def upsert_document(self, doc_id: str, metadata: dict) -> None:
        self._write_json(self.documents_dir / f"{doc_id}.json", {"id": doc_id, **metadata})

    def delete_document(self, doc_id: str) -> None:
        (self.documents_dir / f"{doc_id}.json").unlink(missing_ok=True)

    def record_conversation(self, user_id: str, message: str, reply: str, contexts: list[str]) -> None:
        entry = {
            "userId": user_id or "anonymous",
            "message": message,
            "reply": reply,
            "contexts": list(contexts),
            "createdAt": utc_now(),
        }
        self.root.mkdir(parents=True, exist_ok=True)
        with self._append_lock:
            with open(self.conversations_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry, ensure_ascii=False, default=str) + "\n")

    def record_quiz(self, quiz_id: str, topic: str, questions: list[dict], num_questions: int) -> None:
        self._write_json(
            self.quizzes_dir / f"{quiz_id}.json",
            {
                "id": quiz_id,
                "topic": topic,
                "questions": questions,
                "numQuestions": num_questions,
                "createdAt": utc_now(),
            },
        )


class BackgroundMirror(NullMirror):
    """
    Runs another mirror's writes on a single background thread.

    Calls return immediately. Writes keep their submission order, and a
    failed write is logged and otherwise ignored.
    """

    def __init__(self, inner: NullMirror):
        self.inner = inner
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="mirror")

    @property
    def enabled(self) -> bool:
        return self.inner.enabled

    def _submit(self, operation: str, *args) -> Future:
        future = self._executor.submit(getattr(self.inner, operation), *args)
        future.add_done_callback(lambda f: self._log_failure(operation, f))
        return future

    @staticmethod
    def _log_failure(operation: str, future: Future) -> None:
        error = future.exception()
        if error is not None:
            logger.warning("Mirror %s failed: %s", operation, error)

    def upsert_document(self, doc_id: str, metadata: dict) -> None:
        self._submit("upsert_document", doc_id, metadata)

    def delete_document(self, doc_id: str) -> None:
        self._submit("delete_document", doc_id)

    def record_conversation(self, user_id: str, message: str, reply: str, contexts: list[str]) -> None:
        self._submit("record_conversation", user_id, message, reply, contexts)

    def record_quiz(self, quiz_id: str, topic: str, questions: list[dict], num_questions: int) -> None:
        self._submit("record_quiz", quiz_id, topic, questions, num_questions)

    def close(self) -> None:
        """Wait for pending writes and stop the worker."""
        self._executor.shutdown(wait=True)
        self.inner.close()


def create_mirror(directory: str | Path | None = None) -> NullMirror:
    """
    Build the mirror for a directory, or a NullMirror when none is given.
    """
    if directory is None:
        return NullMirror()
    logger.info("Mirroring documents, conversations and quizzes to %s", directory)
    return BackgroundMirror(JsonFileMirror(directory))
