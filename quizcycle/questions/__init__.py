"""
Question types and their answer validators.

Each question type has one validator registered through @register. Every
QuestionType member must have a validator; a missing one fails at import.
"""

from .base import AnswerResult, AnswerValidator, Question, QuestionType

# Validator registry - populated by @register decorator
VALIDATORS: dict[QuestionType, AnswerValidator] = {}


def register(question_type: QuestionType):
    """Decorator to register an answer validator."""

    def decorator(cls):
        VALIDATORS[question_type] = cls()
        return cls

    return decorator


def get_validator(question_type: str | QuestionType) -> AnswerValidator | None:
    """Get the validator for a question type."""
    if isinstance(question_type, str) and not isinstance(question_type, QuestionType):
        try:
            question_type = QuestionType(question_type.upper())
        except ValueError:
            return None
    return VALIDATORS.get(question_type)


# Import validators to trigger registration
from . import multiple_choice  # noqa: E402,F401
from . import true_false  # noqa: E402,F401
from . import short_answer  # noqa: E402,F401

_missing = set(QuestionType) - set(VALIDATORS)
if _missing:
    raise RuntimeError(f"No validator registered for: {sorted(t.value for t in _missing)}")

__all__ = [
    "AnswerResult",
    "Question",
    "QuestionType",
    "VALIDATORS",
    "get_validator",
    "register",
]
