"""Mastery tracking and adaptive question selection."""

from .mastery_tracker import LearningCycleConfig, MasteryTracker
from .question_selector import QuestionSelector

__all__ = ["LearningCycleConfig", "MasteryTracker", "QuestionSelector"]
