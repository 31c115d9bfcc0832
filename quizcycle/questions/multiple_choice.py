"""
Multiple choice validator.

The answer must be one of the option strings; it is correct when it equals
the stored correct answer after trimming.
"""

from quizcycle.core.exceptions import InvalidArgumentError

from . import QuestionType, register
from .base import AnswerResult, Question, blank_result, is_blank


@register(QuestionType.MULTIPLE_CHOICE)
class MultipleChoiceValidator:
    """Validator for multiple choice questions."""

    def validate(self, question: Question) -> bool:
        return len(question.options) >= 2 and question.has_answer

    def check(self, question: Question, answer: str, evaluator=None) -> AnswerResult:
        if is_blank(answer):
            return blank_result(question, answer)

        given = answer.strip()
        options = [option.strip() for option in question.options]
        if given not in options:
            raise InvalidArgumentError(
                f"Answer {given!r} is not one of the options for question {question.id}"
            )

        expected = (question.correct_answer or "").strip()
        correct = given == expected
        return AnswerResult(
            correct=correct,
            feedback="Correct!" if correct else f"Incorrect. The correct answer is: {expected}",
            user_answer=given,
            correct_answer=expected,
            similarity_score=100.0 if correct else 0.0,
            explanation=question.explanation,
        )
