"""SQLAlchemy models."""

from .base import Base
from .learning import MasteryRecord, QuestionPerformance, SpacedRepetitionRecord, TopicProgress
from .quiz import QuestionBankEntry, QuizSessionRecord, SessionStatus, UserAnswerRecord

__all__ = [
    "Base",
    "SpacedRepetitionRecord",
    "MasteryRecord",
    "QuestionPerformance",
    "TopicProgress",
    "QuestionBankEntry",
    "QuizSessionRecord",
    "SessionStatus",
    "UserAnswerRecord",
]
