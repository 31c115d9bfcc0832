"""
LLM answer evaluator.

Grades free-text answers against the reference answer. Any failure is raised
as ExternalServiceError; the free-text validator owns the fallback.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from loguru import logger

from quizcycle.core.exceptions import ExternalServiceError
from quizcycle.integrations.llm_client import ChatMessage, LLMClient
from quizcycle.questions.base import Question

from .prompts import EVALUATION_SYSTEM_PROMPT, EVALUATION_USER_PROMPT


@dataclass
class AnswerFeedback:
    """Parsed evaluation reply."""

    correct: bool
    similarity_score: float
    feedback: str = ""
    correct_parts: str = ""
    incorrect_parts: str = ""
    improvement_suggestions: str = ""
    correct_answer: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any], correct_answer: str = "") -> AnswerFeedback:
        """
        Parse the model's JSON reply.

        Raises:
            ExternalServiceError: If ``correct`` or ``similarityScore`` is missing or invalid
        """
        if "correct" not in data or "similarityScore" not in data:
            raise ExternalServiceError("Evaluation reply lacks 'correct' or 'similarityScore'")
        try:
            score = float(data["similarityScore"])
        except (TypeError, ValueError) as e:
            raise ExternalServiceError(f"Invalid similarityScore: {data['similarityScore']!r}") from e
        return cls(
            correct=bool(data["correct"]),
            similarity_score=max(0.0, min(100.0, score)),
            feedback=str(data.get("feedback") or ""),
            correct_parts=str(data.get("correctParts") or ""),
            incorrect_parts=str(data.get("incorrectParts") or ""),
            improvement_suggestions=str(data.get("improvementSuggestions") or ""),
            correct_answer=correct_answer,
        )


class AnswerEvaluator:
    """Evaluates short-answer and scenario answers through the LLM client."""

    def __init__(self, client: LLMClient, similarity_threshold: float = 80.0):
        self.client = client
        self.similarity_threshold = similarity_threshold

    def evaluate_answer(self, question: Question, answer: str) -> AnswerFeedback:
        prompt = EVALUATION_USER_PROMPT.format(
            question=question.prompt,
            correct_answer=question.correct_answer or "",
            user_answer=answer,
            explanation=question.explanation or "",
        )
        data = self.client.complete_json(
            [ChatMessage("system", EVALUATION_SYSTEM_PROMPT), ChatMessage("user", prompt)],
            temperature=0.0,
        )
        feedback = AnswerFeedback.from_dict(data, correct_answer=question.correct_answer or "")
        logger.debug(f"Evaluated answer for {question.id}: similarity={feedback.similarity_score:.0f}")
        return feedback
