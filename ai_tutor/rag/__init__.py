"""
RAG module - Retrieval-Augmented Generation pipeline.

This module is responsible for:
1. Retrieving relevant chunks for a query
2. Generating chat replies and quizzes (with a fallback)
3. Orchestrating uploads, chat, quizzes and search
"""

from .retriever import Retriever, format_passages
from .generator import FallbackGenerator, OllamaGenerator, ResilientGenerator, create_generator
from .quiz import MultipleChoiceQuestion, Quiz, ShortAnswerQuestion, parse_quiz_output
from .pipeline import TutorPipeline, build_pipeline

__all__ = [
    "Retriever",
    "format_passages",
    "FallbackGenerator",
    "OllamaGenerator",
    "ResilientGenerator",
    "create_generator",
    "MultipleChoiceQuestion",
    "Quiz",
    "ShortAnswerQuestion",
    "parse_quiz_output",
    "TutorPipeline",
    "build_pipeline",
]
