"""
Free-text validator for short-answer and scenario questions.

Grading is delegated to the LLM evaluator: the answer is correct when its
similarity score reaches the evaluator's threshold. When no evaluator is
configured, or the call fails, the answer is compared case-insensitively
with the stored answer and the result is flagged as degraded.
"""

from loguru import logger

from quizcycle.core.exceptions import ExternalServiceError

from . import QuestionType, register
from .base import AnswerEvaluatorLike, AnswerResult, Question, blank_result, is_blank

DEGRADED_FEEDBACK = "Unable to provide detailed feedback. Using basic comparison."


@register(QuestionType.SCENARIO_BASED)
@register(QuestionType.SHORT_ANSWER)
class FreeTextValidator:
    """Validator for short-answer and scenario-based questions."""

    def validate(self, question: Question) -> bool:
        return question.has_answer

    def check(
        self,
        question: Question,
        answer: str,
        evaluator: AnswerEvaluatorLike | None = None,
    ) -> AnswerResult:
        if is_blank(answer):
            return blank_result(question, answer)

        if evaluator is not None:
            try:
                return self._evaluate(question, answer, evaluator)
            except ExternalServiceError as e:
                logger.warning(f"Answer evaluation failed for question {question.id}, falling back: {e}")

        return self._basic_comparison(question, answer)

    def _evaluate(self, question: Question, answer: str, evaluator: AnswerEvaluatorLike) -> AnswerResult:
        feedback = evaluator.evaluate_answer(question, answer)
        correct = feedback.similarity_score >= evaluator.similarity_threshold
        return AnswerResult(
            correct=correct,
            feedback=feedback.feedback,
            user_answer=answer,
            correct_answer=feedback.correct_answer or question.correct_answer or "",
            similarity_score=feedback.similarity_score,
            explanation=question.explanation,
            details={
                "correct_parts": feedback.correct_parts,
                "incorrect_parts": feedback.incorrect_parts,
                "improvement_suggestions": feedback.improvement_suggestions,
            },
        )

    def _basic_comparison(self, question: Question, answer: str) -> AnswerResult:
        expected = question.correct_answer or ""
        correct = answer.strip().lower() == expected.strip().lower()
        return AnswerResult(
            correct=correct,
            feedback=DEGRADED_FEEDBACK,
            user_answer=answer,
            correct_answer=expected,
            similarity_score=100.0 if correct else 0.0,
            degraded=True,
            explanation=question.explanation,
        )
