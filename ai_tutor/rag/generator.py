"""
Generator - Generates chat replies and quizzes.

This module handles the generation part of RAG:
1. Takes retrieved passages and the user's message (or quiz topic)
2. Builds a prompt with the passages as numbered citations
3. Sends it to Ollama
4. Returns the reply (or parsed quiz questions)

There are two generators with the same interface:

- OllamaGenerator talks to a real model
- FallbackGenerator answers from canned responses and placeholder quizzes

ResilientGenerator tries the first and falls back to the second whenever
the model is unreachable, slow, or returns something unusable. The user
always gets a usable answer.

Key Concept:
This is the "AG" in RAG - Augmented Generation!
We "augment" the model's knowledge with the retrieved passages.
"""

from __future__ import annotations

from typing import Sequence

import ollama

from ai_tutor.config import (
    CHAT_PROMPT_TEMPLATE,
    GENERATION_BACKEND,
    HISTORY_TURNS,
    MODEL_TIMEOUT,
    OLLAMA_BASE_URL,
    OLLAMA_MODEL,
    QUIZ_PROMPT_TEMPLATE,
    SYSTEM_PROMPT,
)
from ai_tutor.errors import UpstreamModelError
from ai_tutor.logging_config import get_logger
from ai_tutor.rag.quiz import Question, fallback_quiz, parse_quiz_output
from ai_tutor.rag.retriever import format_passages

logger = get_logger(__name__)


def format_history(history: Sequence[dict] | None, turns: int = HISTORY_TURNS) -> str:
    """The last few turns as 'role: content' lines."""
    if not history:
        return ""
    recent = list(history)[-turns:]
    return "\n".join(f"{turn.get('role', 'user')}: {turn.get('content', '')}" for turn in recent)


def build_chat_prompt(message: str, passages: Sequence, history: Sequence[dict] | None = None) -> str:
    context = ""
    if passages:
        context = f"\nRelevant study material:\n{format_passages(passages)}\n"

    history_text = format_history(history)
    if history_text:
        history_text = f"\nPrevious conversation:\n{history_text}\n"

    return CHAT_PROMPT_TEMPLATE.format(context=context, history=history_text, question=message)


def build_quiz_prompt(topic: str, passages: Sequence, num_questions: int) -> str:
    context = ""
    if passages:
        context = f"\n\nStudy material:\n{format_passages(passages)}"
    return QUIZ_PROMPT_TEMPLATE.format(num_questions=num_questions, topic=topic, context=context)


class BaseGenerator:
    """Common interface for all generators."""

    name = "base"

    def chat_response(
        self,
        message: str,
        passages: Sequence = (),
        history: Sequence[dict] | None = None,
    ) -> str:
        raise NotImplementedError

    def generate_quiz(self, topic: str, passages: Sequence = (), num_questions: int = 5) -> list[Question]:
        raise NotImplementedError


class OllamaGenerator(BaseGenerator):
    """
    Generates responses with an Ollama chat model.

    Any client error, timeout or empty reply is raised as
    UpstreamModelError; so is a quiz reply that doesn't parse.

    Example:
        generator = OllamaGenerator(model="llama3.2")
        answer = generator.chat_response("What is a derivative?", passages)
    """

    name = "ollama"

    def __init__(
        self,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float = MODEL_TIMEOUT,
        client: ollama.Client | None = None,
    ):
        """
        Initialize the generator.

        Args:
            model: Ollama model name (uses config default if not provided)
            base_url: Ollama server URL
            timeout: Seconds before a request is abandoned
            client: Pre-built client (mainly for tests)
        """
        self.model = model or OLLAMA_MODEL
        self._client = client or ollama.Client(host=base_url or OLLAMA_BASE_URL, timeout=timeout)

    def generate(self, prompt: str, system: str = SYSTEM_PROMPT) -> str:
        """Send one prompt and return the reply text."""
        try:
            response = self._client.chat(
                model=self.model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
            )
            content = response["message"]["content"]
        except Exception as e:
            raise UpstreamModelError(self.name, "Chat request failed", e) from e

        if not content or not content.strip():
            raise UpstreamModelError(self.name, "Model returned an empty reply")
        return content

    def chat_response(
        self,
        message: str,
        passages: Sequence = (),
        history: Sequence[dict] | None = None,
    ) -> str:
        return self.generate(build_chat_prompt(message, passages, history))

    def generate_quiz(self, topic: str, passages: Sequence = (), num_questions: int = 5) -> list[Question]:
        reply = self.generate(build_quiz_prompt(topic, passages, num_questions))
        result = parse_quiz_output(reply)
        if not result.ok:
            raise UpstreamModelError(self.name, f"Unusable quiz output: {result.error}")
        return result.questions


# =============================================================================
# FALLBACK RESPONSES
# =============================================================================

SINE_RESPONSE = """The sine function is a fundamental trigonometric function:

• **Definition**: sin(θ) = opposite/hypotenuse in a right triangle
• **Unit Circle**: sin(θ) = y-coordinate on the unit circle

**Key Values**:
- sin(0°) = 0
- sin(30°) = 1/2
- sin(45°) = √2/2
- sin(60°) = √3/2
- sin(90°) = 1

**Important Identities**:
- sin²(θ) + cos²(θ) = 1
- sin(90° - θ) = cos(θ)
- sin(-θ) = -sin(θ)

Would you like me to explain any specific application or concept related to sine?"""

ARRAYS_RESPONSE = """**Arrays** are fundamental data structures:

• **Definition**: A collection of elements stored in contiguous memory locations, accessible by index

• **Key Characteristics**:
  - Fixed or dynamic size
  - Zero-based indexing (usually)
  - Random access (O(1))

• **Time Complexities**:
  - Access: O(1)
  - Search: O(n)
  - Insertion: O(n)
  - Deletion: O(n)

• **Common Operations**:
  - Traversal
  - Searching (linear, binary)
  - Sorting (bubble, merge, quick)
  - Insertion/Deletion

Would you like to dive deeper into any specific aspect of arrays?"""

GREETING_RESPONSE = """Hello! 👋 I'm your AI Tutor Agent. I'm here to help you learn! 🎓

I can help you with:
• Understanding concepts from your study materials
• Answering questions with explanations
• Generating quizzes and practice problems
• Providing step-by-step guidance

**To get the best experience:**
1. Upload your study materials (PDFs)
2. Ask me questions based on them
3. I'll provide answers grounded in your materials

What would you like to learn today?"""

HELP_RESPONSE = """I'm your AI Tutor Agent! Here's what I can do:

📚 **Study Assistance**:
- Answer questions from your uploaded study materials
- Explain concepts step-by-step
- Provide examples and analogies

📝 **Quiz Generation**:
- Create quizzes from your study materials
- Multiple question types (MCQ, short answer)

💡 **Learning Support**:
- Break down complex topics
- Provide personalized explanations

**To get started:**
1. Upload your PDF study materials
2. Ask me questions about the content
3. Generate quizzes to test your knowledge

What would you like to try first?"""

DEFAULT_RESPONSE = """I'd be happy to help with "{message}"!

**To provide the best answer:**
1. Upload your study materials (PDFs) for context-aware responses
2. Ask specific questions about the content
3. I'll search through your materials and provide detailed explanations

**Current Status:**
- {status}

Could you provide more details about what you'd like to learn? For example:
• Math concepts and formulas
• Programming and data structures
• Science topics
• Any subject you're studying!"""

GREETINGS = {"hi", "hello", "hey"}


class FallbackGenerator(BaseGenerator):
    """
    Answers without any model.

    Chat replies come from a few canned topic handlers; when passages were
    retrieved they are quoted verbatim first. Quizzes are placeholders with
    a fixed mcq/short-answer mix.
    """

    name = "fallback"

    def canned_response(self, message: str, has_passages: bool = False) -> str:
        """Pick a canned reply for a lowercased, stripped message."""
        if "sin" in message and ("theta" in message or "θ" in message):
            return SINE_RESPONSE

        if "array" in message or "dsa" in message or "data structure" in message:
            return ARRAYS_RESPONSE

        if message in GREETINGS:
            return GREETING_RESPONSE

        if "help" in message or "what can you do" in message:
            return HELP_RESPONSE

        status = (
            "✅ Using your study materials"
            if has_passages
            else "⚠️ No study materials found (using general knowledge)"
        )
        return DEFAULT_RESPONSE.format(message=message, status=status)

    def chat_response(
        self,
        message: str,
        passages: Sequence = (),
        history: Sequence[dict] | None = None,
    ) -> str:
        lowered = message.lower().strip()
        reply = self.canned_response(lowered, has_passages=bool(passages))

        if passages:
            return f"Based on your study materials:\n\n{format_passages(passages)}\n\n{reply}"
        return reply

    def generate_quiz(self, topic: str, passages: Sequence = (), num_questions: int = 5) -> list[Question]:
        return fallback_quiz(topic, num_questions)


class ResilientGenerator(BaseGenerator):
    """
    Real model first, canned fallback on failure.

    Example:
        generator = ResilientGenerator(OllamaGenerator(), FallbackGenerator())
        reply = generator.chat_response("hello")  # always returns text
    """

    def __init__(self, primary: BaseGenerator | None, fallback: BaseGenerator):
        self.primary = primary
        self.fallback = fallback

    @property
    def name(self) -> str:
        return self.primary.name if self.primary else self.fallback.name

    @property
    def mode(self) -> str:
        """'primary' when a real model is configured, else 'fallback'."""
        return "primary" if self.primary else "fallback"

    def chat_response(
        self,
        message: str,
        passages: Sequence = (),
        history: Sequence[dict] | None = None,
    ) -> str:
        if self.primary is not None:
            try:
                return self.primary.chat_response(message, passages, history)
            except UpstreamModelError as e:
                logger.warning("Chat generation failed, using fallback: %s", e)
        return self.fallback.chat_response(message, passages, history)

    def generate_quiz(self, topic: str, passages: Sequence = (), num_questions: int = 5) -> list[Question]:
        if self.primary is not None:
            try:
                return self.primary.generate_quiz(topic, passages, num_questions)
            except UpstreamModelError as e:
                logger.warning("Quiz generation failed, using fallback: %s", e)
        return self.fallback.generate_quiz(topic, passages, num_questions)


def create_generator(backend: str | None = None) -> ResilientGenerator:
    """
    Build the configured generator, always wrapped with the canned fallback.

    Args:
        backend: "ollama" or "fallback"
    """
    backend = (backend or GENERATION_BACKEND).lower()

    if backend == "ollama":
        primary: BaseGenerator | None = OllamaGenerator()
        logger.info("Generation backend: ollama (%s)", primary.model)
    elif backend == "fallback":
        primary = None
        logger.warning("No generation backend configured. Using fallback mode.")
    else:
        raise ValueError(f"Unknown generation backend: {backend}")

    return ResilientGenerator(primary, FallbackGenerator())
