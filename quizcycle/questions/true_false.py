"""
True/False validator.

Answers are case-insensitive and must read "true" or "false".
"""

from quizcycle.core.exceptions import InvalidArgumentError

from . import QuestionType, register
from .base import AnswerResult, Question, blank_result, is_blank

TRUE_FALSE_VALUES = ("true", "false")


def normalize(value: str | None) -> str:
    return (value or "").strip().lower()


@register(QuestionType.TRUE_FALSE)
class TrueFalseValidator:
    """Validator for true/false questions."""

    def validate(self, question: Question) -> bool:
        return normalize(question.correct_answer) in TRUE_FALSE_VALUES

    def check(self, question: Question, answer: str, evaluator=None) -> AnswerResult:
        if is_blank(answer):
            return blank_result(question, answer)

        given = normalize(answer)
        if given not in TRUE_FALSE_VALUES:
            raise InvalidArgumentError(f"True/False answer must be 'true' or 'false', got {answer!r}")

        expected = normalize(question.correct_answer)
        correct = given == expected
        return AnswerResult(
            correct=correct,
            feedback="Correct!" if correct else f"Incorrect. The answer is {expected.capitalize()}.",
            user_answer=given,
            correct_answer=expected,
            similarity_score=100.0 if correct else 0.0,
            explanation=question.explanation,
        )
