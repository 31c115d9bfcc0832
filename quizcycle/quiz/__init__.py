"""Persisted question bank."""

from .question_bank import QuestionBank, content_hash, normalize_mcq_answer

__all__ = ["QuestionBank", "content_hash", "normalize_mcq_answer"]
