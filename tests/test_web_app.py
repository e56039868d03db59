"""Tests for the FastAPI web interface."""

from ai_tutor.rag.generator import GREETING_RESPONSE

from conftest import make_locked_pdf


def upload(client, data, filename="notes.pdf", content_type="application/pdf"):
    return client.post("/upload", files={"file": (filename, data, content_type)})


# ── Health ───────────────────────────────────────────────────────────────────


class TestHealth:
    def test_health_ok(self, test_client):
        resp = test_client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["vectorStore"] == {"totalVectors": 0, "totalDocuments": 0}
        assert body["ai"]["generation"] == "fallback mode"


# ── POST /upload ─────────────────────────────────────────────────────────────


class TestUpload:
    def test_uploads_pdf(self, test_client, sample_pdf):
        resp = upload(test_client, sample_pdf)
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["pageCount"] == 2
        assert body["chunkCount"] >= 1
        assert body["docId"]

    def test_rejects_non_pdf(self, test_client):
        resp = upload(test_client, b"just text", "notes.txt", "text/plain")
        assert resp.status_code == 400
        assert resp.json()["error"] == "Only PDF files are allowed"

    def test_rejects_missing_file(self, test_client):
        resp = test_client.post("/upload")
        assert resp.status_code == 400
        assert resp.json()["error"] == "No file uploaded"

    def test_blank_pdf_is_unprocessable(self, test_client, blank_pdf):
        resp = upload(test_client, blank_pdf, "scan.pdf")
        assert resp.status_code == 422
        assert "no extractable text" in resp.json()["error"]
        assert test_client.get("/documents").json()["total"] == 0

    def test_locked_pdf_is_unprocessable(self, test_client):
        resp = upload(test_client, make_locked_pdf("Secret notes on arrays."), "locked.pdf")
        assert resp.status_code == 422
        assert test_client.get("/documents").json()["total"] == 0


# ── POST /chat ───────────────────────────────────────────────────────────────


class TestChat:
    def test_hello_without_documents(self, test_client):
        resp = test_client.post("/chat", json={"message": "hello"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["reply"] == GREETING_RESPONSE
        assert body["usedRAG"] is False
        assert body["sources"] == []

    def test_with_documents(self, test_client, sample_pdf):
        upload(test_client, sample_pdf)
        body = test_client.post("/chat", json={"message": "What is an array?", "userId": "u1"}).json()
        assert body["usedRAG"] is True
        assert body["sources"][0]["filename"] == "notes.pdf"

    def test_accepts_history(self, test_client):
        resp = test_client.post("/chat", json={
            "message": "hello",
            "history": [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "Hello!"}],
        })
        assert resp.status_code == 200

    def test_rejects_empty_message(self, test_client):
        resp = test_client.post("/chat", json={"message": ""})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Message is required"

    def test_rejects_missing_message(self, test_client):
        resp = test_client.post("/chat", json={})
        assert resp.status_code == 422

    def test_unknown_document(self, test_client):
        resp = test_client.post("/chat", json={"message": "hello", "docId": "missing"})
        assert resp.status_code == 404


# ── POST /generate-quiz ──────────────────────────────────────────────────────


class TestQuiz:
    def test_returns_quiz(self, test_client):
        resp = test_client.post("/generate-quiz", json={"topic": "Arrays", "numQuestions": 5})
        assert resp.status_code == 200
        body = resp.json()
        assert body["topic"] == "Arrays"
        assert body["quizId"]
        assert len(body["questions"]) == 5
        assert body["questions"][0]["options"][0] == "Option A - First concept"

    def test_default_size(self, test_client):
        body = test_client.post("/generate-quiz", json={"topic": "Trees"}).json()
        assert len(body["questions"]) == 5

    def test_rejects_empty_topic(self, test_client):
        resp = test_client.post("/generate-quiz", json={"topic": " "})
        assert resp.status_code == 400

    def test_rejects_bad_size(self, test_client):
        resp = test_client.post("/generate-quiz", json={"topic": "Arrays", "numQuestions": 0})
        assert resp.status_code == 400


# ── Documents ────────────────────────────────────────────────────────────────


class TestDocuments:
    def test_empty_listing(self, test_client):
        assert test_client.get("/documents").json() == {"documents": [], "total": 0}

    def test_list_and_delete(self, test_client, sample_pdf):
        doc_id = upload(test_client, sample_pdf).json()["docId"]

        documents = test_client.get("/documents").json()["documents"]
        assert [d["id"] for d in documents] == [doc_id]
        assert documents[0]["numPages"] == 2

        resp = test_client.delete(f"/documents/{doc_id}")
        assert resp.status_code == 200
        assert resp.json()["success"] is True
        assert test_client.get("/documents").json()["total"] == 0

    def test_delete_unknown(self, test_client):
        resp = test_client.delete("/documents/missing")
        assert resp.status_code == 404
        assert "missing" in resp.json()["error"]


# ── POST /search ─────────────────────────────────────────────────────────────


class TestSearch:
    def test_empty_store(self, test_client):
        resp = test_client.post("/search", json={"query": "arrays"})
        assert resp.status_code == 200
        assert resp.json() == {"query": "arrays", "results": []}

    def test_finds_uploaded_text(self, test_client, sample_pdf):
        doc_id = upload(test_client, sample_pdf).json()["docId"]
        body = test_client.post("/search", json={"query": "arrays", "topK": 1, "docId": doc_id}).json()
        assert len(body["results"]) == 1
        assert body["results"][0]["documentId"] == doc_id

    def test_rejects_empty_query(self, test_client):
        resp = test_client.post("/search", json={"query": ""})
        assert resp.status_code == 400
