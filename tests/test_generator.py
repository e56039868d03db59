"""Tests for chat and quiz generation."""

import json
from unittest.mock import MagicMock

import pytest

from ai_tutor.embeddings.vector_store import SearchResult
from ai_tutor.errors import UpstreamModelError
from ai_tutor.rag.generator import (
    GREETING_RESPONSE,
    HELP_RESPONSE,
    FallbackGenerator,
    OllamaGenerator,
    ResilientGenerator,
    build_chat_prompt,
    create_generator,
    format_history,
)
from ai_tutor.rag.quiz import MultipleChoiceQuestion


def passage(text, similarity=0.9):
    return SearchResult(
        id="d-chunk-0",
        document_id="d",
        text=text,
        chunk_index=0,
        metadata={"filename": "notes.pdf", "page": 1, "totalPages": 1},
        similarity=similarity,
    )


def ollama_client(content=None, error=None):
    client = MagicMock()
    if error is not None:
        client.chat.side_effect = error
    else:
        client.chat.return_value = {"message": {"content": content}}
    return client


class TestFallbackChat:
    def test_greeting(self):
        assert FallbackGenerator().chat_response("  Hello ") == GREETING_RESPONSE

    def test_greeting_must_be_exact(self):
        assert FallbackGenerator().chat_response("hello there") != GREETING_RESPONSE

    def test_sine_needs_theta(self):
        generator = FallbackGenerator()
        assert "sine function" in generator.chat_response("What is sin theta?")
        assert "sine function" in generator.chat_response("sin(θ)?")
        assert "sine function" not in generator.chat_response("single")

    def test_arrays(self):
        reply = FallbackGenerator().chat_response("Explain DSA")
        assert reply.startswith("**Arrays**")

    def test_help(self):
        assert FallbackGenerator().chat_response("What can you do?") == HELP_RESPONSE

    def test_default_mentions_message(self):
        reply = FallbackGenerator().chat_response("Photosynthesis")
        assert '"photosynthesis"' in reply
        assert "No study materials found" in reply

    def test_quotes_passages_first(self):
        reply = FallbackGenerator().chat_response("hello", [passage("Arrays are contiguous.")])
        assert reply.startswith("Based on your study materials:\n\n[1] Arrays are contiguous.")
        assert reply.endswith(GREETING_RESPONSE)


class TestOllamaGenerator:
    def test_returns_reply_text(self):
        client = ollama_client("A derivative measures change.")
        generator = OllamaGenerator(model="llama3.2", client=client)

        assert generator.chat_response("What is a derivative?") == "A derivative measures change."
        kwargs = client.chat.call_args.kwargs
        assert kwargs["model"] == "llama3.2"
        assert [m["role"] for m in kwargs["messages"]] == ["system", "user"]

    def test_prompt_contains_numbered_passages(self):
        client = ollama_client("ok")
        OllamaGenerator(client=client).chat_response("q", [passage("first"), passage("second")])
        prompt = client.chat.call_args.kwargs["messages"][1]["content"]
        assert "[1] first" in prompt
        assert "[2] second" in prompt

    def test_client_error(self):
        generator = OllamaGenerator(client=ollama_client(error=ConnectionError("refused")))
        with pytest.raises(UpstreamModelError):
            generator.chat_response("hi")

    def test_empty_reply(self):
        with pytest.raises(UpstreamModelError):
            OllamaGenerator(client=ollama_client("   ")).chat_response("hi")

    def test_quiz_is_parsed(self):
        reply = "Here you go:\n" + json.dumps([
            {"type": "mcq", "question": "Q1?", "options": ["a", "b"], "answer": "a"},
        ])
        questions = OllamaGenerator(client=ollama_client(reply)).generate_quiz("Arrays", [], 1)
        assert isinstance(questions[0], MultipleChoiceQuestion)

    def test_unparseable_quiz(self):
        generator = OllamaGenerator(client=ollama_client("no quiz today"))
        with pytest.raises(UpstreamModelError):
            generator.generate_quiz("Arrays", [], 3)


class TestPrompts:
    def test_history_keeps_last_turns(self):
        history = [{"role": "user", "content": f"m{i}"} for i in range(6)]
        assert format_history(history, turns=4).splitlines() == [
            "user: m2", "user: m3", "user: m4", "user: m5",
        ]

    def test_chat_prompt_without_context(self):
        prompt = build_chat_prompt("What is a stack?", [])
        assert "Student question: What is a stack?" in prompt
        assert "study material:" not in prompt


class TestResilientGenerator:
    def test_falls_back_on_chat_failure(self):
        primary = OllamaGenerator(client=ollama_client(error=TimeoutError()))
        generator = ResilientGenerator(primary, FallbackGenerator())
        assert generator.chat_response("hello") == GREETING_RESPONSE

    def test_falls_back_on_bad_quiz(self):
        primary = OllamaGenerator(client=ollama_client("not json"))
        generator = ResilientGenerator(primary, FallbackGenerator())
        questions = generator.generate_quiz("Arrays", [], 5)
        assert [q.type for q in questions] == ["mcq", "mcq", "mcq", "short", "short"]

    def test_mode(self):
        assert ResilientGenerator(None, FallbackGenerator()).mode == "fallback"
        primary = OllamaGenerator(client=ollama_client("x"))
        assert ResilientGenerator(primary, FallbackGenerator()).mode == "primary"


class TestCreateGenerator:
    def test_fallback_backend(self):
        assert create_generator("fallback").primary is None

    def test_ollama_backend(self):
        assert isinstance(create_generator("ollama").primary, OllamaGenerator)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_generator("gpt")
