"""
Base types for question validators.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

from quizcycle.core.difficulty import Difficulty

if TYPE_CHECKING:
    from quizcycle.generation.answer_evaluator import AnswerFeedback


class QuestionType(str, Enum):
    """Supported question types."""

    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    TRUE_FALSE = "TRUE_FALSE"
    SHORT_ANSWER = "SHORT_ANSWER"
    SCENARIO_BASED = "SCENARIO_BASED"


@dataclass(frozen=True)
class Question:
    """Immutable question content. Options are only meaningful for multiple choice."""

    id: str
    topic: str
    difficulty: Difficulty
    question_type: QuestionType
    prompt: str
    options: tuple[str, ...] = ()
    correct_answer: str | None = None
    explanation: str | None = None
    source_file: str | None = None

    @property
    def has_answer(self) -> bool:
        return bool(self.correct_answer and self.correct_answer.strip())

    def without_answer(self) -> Question:
        """Client-visible copy: answer and explanation stripped, options kept in order."""
        return replace(self, correct_answer=None, explanation=None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "topic": self.topic,
            "difficulty": self.difficulty.value,
            "question_type": self.question_type.value,
            "prompt": self.prompt,
            "options": list(self.options),
            "correct_answer": self.correct_answer,
            "explanation": self.explanation,
            "source_file": self.source_file,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Question:
        return cls(
            id=str(data.get("id") or ""),
            topic=data["topic"],
            difficulty=Difficulty.parse(data["difficulty"]),
            question_type=QuestionType(str(data.get("question_type") or data["type"]).upper()),
            prompt=data.get("prompt") or data.get("question", ""),
            options=tuple(data.get("options") or ()),
            correct_answer=data.get("correct_answer"),
            explanation=data.get("explanation"),
            source_file=data.get("source_file"),
        )


@dataclass
class AnswerResult:
    """Result of checking an answer."""

    correct: bool
    feedback: str
    user_answer: str
    correct_answer: str
    similarity_score: float | None = None
    degraded: bool = False  # True when the evaluator was unavailable
    explanation: str | None = None
    details: dict[str, Any] = field(default_factory=dict)


def is_blank(answer: str | None) -> bool:
    return answer is None or not answer.strip()


def blank_result(question: Question, answer: str | None) -> AnswerResult:
    """Empty answers are wrong for every question type, never malformed."""
    return AnswerResult(
        correct=False,
        feedback="No answer given.",
        user_answer=answer or "",
        correct_answer=question.correct_answer or "",
        similarity_score=0.0,
        explanation=question.explanation,
    )


class AnswerEvaluatorLike(Protocol):
    """What free-text validation needs from the LLM evaluator."""

    similarity_threshold: float

    def evaluate_answer(self, question: Question, answer: str) -> AnswerFeedback:
        ...


class AnswerValidator(Protocol):
    """Protocol for per-type answer validators."""

    def validate(self, question: Question) -> bool:
        """Check if the question has the fields this type needs."""
        ...

    def check(
        self,
        question: Question,
        answer: str,
        evaluator: AnswerEvaluatorLike | None = None,
    ) -> AnswerResult:
        """Grade the answer. Raises InvalidArgumentError for malformed input."""
        ...
