"""Tests for the activity mirror."""

import json
import logging

from ai_tutor.storage.mirror import BackgroundMirror, JsonFileMirror, NullMirror, create_mirror


class TestJsonFileMirror:
    def test_document_roundtrip(self, tmp_path):
        mirror = JsonFileMirror(tmp_path)
        mirror.upsert_document("d1", {"filename": "a.pdf", "numChunks": 3})

        path = tmp_path / "documents" / "d1.json"
        assert json.loads(path.read_text()) == {"id": "d1", "filename": "a.pdf", "numChunks": 3}

        mirror.delete_document("d1")
        assert not path.exists()

    def test_delete_missing_document_is_fine(self, tmp_path):
        JsonFileMirror(tmp_path).delete_document("never-stored")

    def test_conversations_are_appended(self, tmp_path):
        mirror = JsonFileMirror(tmp_path)
        mirror.record_conversation("", "hi", "hello", [])
        mirror.record_conversation("u1", "arrays?", "answer", ["chunk"])

        lines = (tmp_path / "conversations.jsonl").read_text().splitlines()
        entries = [json.loads(line) for line in lines]
        assert [e["userId"] for e in entries] == ["anonymous", "u1"]
        assert entries[1]["contexts"] == ["chunk"]

    def test_quiz(self, tmp_path):
        JsonFileMirror(tmp_path).record_quiz("q1", "Arrays", [{"id": 1}], 1)
        data = json.loads((tmp_path / "quizzes" / "q1.json").read_text())
        assert data["topic"] == "Arrays"
        assert data["numQuestions"] == 1


class BrokenMirror(NullMirror):
    enabled = True

    def record_quiz(self, *args):
        raise OSError("disk full")


class TestBackgroundMirror:
    def test_writes_happen_in_background(self, tmp_path):
        mirror = BackgroundMirror(JsonFileMirror(tmp_path))
        mirror.upsert_document("d1", {"filename": "a.pdf"})
        mirror.close()
        assert (tmp_path / "documents" / "d1.json").exists()

    def test_failures_are_logged_not_raised(self, caplog):
        mirror = BackgroundMirror(BrokenMirror())
        with caplog.at_level(logging.WARNING, logger="ai_tutor"):
            mirror.record_quiz("q1", "Arrays", [], 1)
            mirror.close()
        assert "disk full" in caplog.text


def test_create_mirror(tmp_path):
    assert not create_mirror(None).enabled
    mirror = create_mirror(tmp_path)
    assert isinstance(mirror, BackgroundMirror)
    assert mirror.enabled
    mirror.close()
