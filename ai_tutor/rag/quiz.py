"""
Quiz - Question types and parsing of model quiz output.

A question is either multiple-choice (with options) or short-answer
(without). They are separate classes, so a short-answer question with
options can't exist.

Models are asked for a bare JSON array but often wrap it in prose or code
fences. parse_quiz_output() cuts out the outermost [...] and validates
every item, returning a QuizParseResult instead of raising.
"""

from __future__ import annotations

import json
import math
import uuid
from dataclasses import dataclass, field
from typing import Union

MCQ = "mcq"
SHORT = "short"

_MCQ_ALIASES = {"mcq", "multiple-choice", "multiple_choice", "multiplechoice"}
_SHORT_ALIASES = {"short", "short-answer", "short_answer", "shortanswer"}


@dataclass(frozen=True)
class MultipleChoiceQuestion:
    id: int
    question: str
    options: tuple[str, ...]
    answer: str
    explanation: str = ""

    type = MCQ

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "question": self.question,
            "options": list(self.options),
            "answer": self.answer,
            "explanation": self.explanation,
        }


@dataclass(frozen=True)
class ShortAnswerQuestion:
    id: int
    question: str
    answer: str
    explanation: str = ""

    type = SHORT

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "question": self.question,
            "answer": self.answer,
            "explanation": self.explanation,
        }


Question = Union[MultipleChoiceQuestion, ShortAnswerQuestion]


@dataclass
class Quiz:
    """
    A generated quiz.

    Attributes:
        topic: What the quiz is about
        questions: Ordered questions, ids 1..n
        quiz_id: Unique identifier
    """
    topic: str
    questions: list[Question]
    quiz_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def questions_as_dicts(self) -> list[dict]:
        return [q.to_dict() for q in self.questions]


@dataclass
class QuizParseResult:
    """Either parsed questions or the reason parsing failed."""
    questions: list[Question] | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.questions is not None


def question_from_dict(item: dict, question_id: int) -> Question:
    """
    Build a question from its JSON shape.

    Raises:
        ValueError: If the item doesn't describe a valid question
    """
    if not isinstance(item, dict):
        raise ValueError("question must be an object")

    text = item.get("question")
    answer = item.get("answer")
    if not isinstance(text, str) or not text.strip():
        raise ValueError("question text is missing")
    if answer is None or (isinstance(answer, str) and not answer.strip()):
        raise ValueError("answer is missing")

    explanation = item.get("explanation") or ""
    kind = str(item.get("type", "")).strip().lower()
    options = item.get("options")

    if not kind:
        kind = MCQ if options else SHORT

    if kind in _MCQ_ALIASES:
        if not isinstance(options, list) or len(options) < 2:
            raise ValueError("multiple-choice question needs at least two options")
        return MultipleChoiceQuestion(
            id=question_id,
            question=text.strip(),
            options=tuple(str(option) for option in options),
            answer=str(answer),
            explanation=str(explanation),
        )
    if kind in _SHORT_ALIASES:
        return ShortAnswerQuestion(
            id=question_id,
            question=text.strip(),
            answer=str(answer),
            explanation=str(explanation),
        )
    raise ValueError(f"unknown question type: {kind!r}")


def extract_json_array(text: str) -> str | None:
    """Return the substring from the first '[' to the last ']', or None."""
    if not text:
        return None
    start = text.find("[")
    end = text.rfind("]")
    if start < 0 or end <= start:
        return None
    return text[start:end + 1]


def parse_quiz_output(text: str) -> QuizParseResult:
    """
    Parse a model's quiz reply.

    Strategy:
    1) Cut out the outermost JSON array.
    2) json.loads it.
    3) Validate every item; ids are renumbered 1..n.

    Returns:
        QuizParseResult with questions, or with an error message
    """
    candidate = extract_json_array(text)
    if candidate is None:
        return QuizParseResult(error="no JSON array found in model output")

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        return QuizParseResult(error=f"invalid JSON: {e}")

    if not isinstance(data, list) or not data:
        return QuizParseResult(error="expected a non-empty JSON array")

    questions: list[Question] = []
    for position, item in enumerate(data, start=1):
        try:
            questions.append(question_from_dict(item, position))
        except ValueError as e:
            return QuizParseResult(error=f"question {position}: {e}")

    return QuizParseResult(questions=questions)


def fallback_quiz(topic: str, num_questions: int) -> list[Question]:
    """
    Placeholder quiz used when no model is available.

    ceil(60%) of the questions are multiple-choice with four generic
    options (the first one is correct), the rest are short-answer. The
    count and type mix are fixed; the content is generic.
    """
    mcq_count = math.ceil(num_questions * 0.6)
    questions: list[Question] = []

    for i in range(1, mcq_count + 1):
        options = (
            "Option A - First concept",
            "Option B - Second concept",
            "Option C - Third concept",
            "Option D - Fourth concept",
        )
        questions.append(MultipleChoiceQuestion(
            id=i,
            question=f"What is a key concept or important aspect of {topic}?",
            options=options,
            answer=options[0],
            explanation=(
                f"This question tests your understanding of {topic}. "
                "Review the study materials to understand the key concepts better."
            ),
        ))

    for i in range(mcq_count + 1, num_questions + 1):
        questions.append(ShortAnswerQuestion(
            id=i,
            question=f"Explain {topic} in your own words or describe a specific aspect of it.",
            answer=f"An explanation of {topic} would include...",
            explanation=f"Review your study materials to provide a comprehensive answer about {topic}.",
        ))

    return questions
