"""Session orchestration and topic progress."""

from .progress_service import ProgressService
from .quiz_engine import QuizSessionEngine, SessionView

__all__ = ["ProgressService", "QuizSessionEngine", "SessionView"]
