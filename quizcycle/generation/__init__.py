"""LLM-backed question generation and answer evaluation."""

from .answer_evaluator import AnswerEvaluator, AnswerFeedback
from .question_generator import QuestionGenerator

__all__ = ["AnswerEvaluator", "AnswerFeedback", "QuestionGenerator"]
