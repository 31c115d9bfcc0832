"""
Learner state models.

- SpacedRepetitionRecord: SM-2 review state per (user, question)
- TopicProgress: learning-cycle aggregate per (user, topic), reset after inactivity
- MasteryRecord: per-difficulty attempts within a topic progress cycle
- QuestionPerformance: per (user, question) attempt history used to skip seen questions
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Float, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quizcycle.core.scoring import percentage, utcnow

from .base import Base


class SpacedRepetitionRecord(Base):
    """
    SM-2 review state for one question and one user.

    Created on first exposure (immediately due) and updated on every answer.
    Records are never deleted.
    """

    __tablename__ = "spaced_repetition_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(100), nullable=False)
    question_id: Mapped[str] = mapped_column(String(64), nullable=False)

    repetition_number: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    ease_factor: Mapped[float] = mapped_column(Float, default=2.5, nullable=False)
    interval_days: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    next_review_date: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    last_review_date: Mapped[datetime | None] = mapped_column()
    consecutive_correct: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    consecutive_incorrect: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "question_id", name="uq_sr_user_question"),
        Index("idx_sr_user_next_review", "user_id", "next_review_date"),
    )

    def is_due(self, now: datetime) -> bool:
        return self.next_review_date <= now

    def __repr__(self) -> str:
        return (
            f"<SpacedRepetitionRecord user={self.user_id} question={self.question_id} "
            f"rep={self.repetition_number} ease={self.ease_factor} interval={self.interval_days}>"
        )


class TopicProgress(Base):
    """
    One learning cycle for a user on a topic.

    Only one record per (user, topic) is active. When the cycle expires the
    record is deactivated and a fresh one starts, together with fresh
    per-difficulty mastery records.
    """

    __tablename__ = "topic_progress"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(100), nullable=False)
    topic: Mapped[str] = mapped_column(String(200), nullable=False)

    overall_score: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    questions_attempted: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    questions_correct: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    start_date: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    last_attempt_date: Mapped[datetime | None] = mapped_column()

    mastery_records: Mapped[list[MasteryRecord]] = relationship(
        back_populates="progress", cascade="all, delete-orphan", lazy="selectin"
    )

    __table_args__ = (
        Index("idx_progress_user_topic_active", "user_id", "topic", "active"),
        Index("idx_progress_active_last_attempt", "active", "last_attempt_date"),
    )

    def record(self, correct: bool, when: datetime) -> None:
        self.questions_attempted += 1
        if correct:
            self.questions_correct += 1
        self.overall_score = percentage(self.questions_correct, self.questions_attempted)
        self.last_attempt_date = when

    def __repr__(self) -> str:
        return (
            f"<TopicProgress user={self.user_id} topic={self.topic} "
            f"score={self.overall_score:.1f} active={self.active}>"
        )


class MasteryRecord(Base):
    """Attempts at one difficulty within a topic progress cycle."""

    __tablename__ = "mastery_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    progress_id: Mapped[int] = mapped_column(
        ForeignKey("topic_progress.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(100), nullable=False)
    topic: Mapped[str] = mapped_column(String(200), nullable=False)
    difficulty: Mapped[str] = mapped_column(String(10), nullable=False)

    total_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    correct_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    average_response_time_ms: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_attempt_at: Mapped[datetime | None] = mapped_column()

    progress: Mapped[TopicProgress] = relationship(back_populates="mastery_records")

    __table_args__ = (
        UniqueConstraint("progress_id", "difficulty", name="uq_mastery_progress_difficulty"),
        Index("idx_mastery_user_topic", "user_id", "topic"),
    )

    @property
    def accuracy(self) -> float:
        return percentage(self.correct_attempts, self.total_attempts)

    def __repr__(self) -> str:
        return (
            f"<MasteryRecord user={self.user_id} topic={self.topic} difficulty={self.difficulty} "
            f"{self.correct_attempts}/{self.total_attempts}>"
        )


class QuestionPerformance(Base):
    """Attempt history for one question and one user."""

    __tablename__ = "question_performance"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(100), nullable=False)
    question_id: Mapped[str] = mapped_column(String(64), nullable=False)
    topic: Mapped[str] = mapped_column(String(200), nullable=False)
    difficulty: Mapped[str] = mapped_column(String(10), nullable=False)

    total_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    correct_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    average_response_time_ms: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    first_attempt_at: Mapped[datetime | None] = mapped_column()
    last_attempt_at: Mapped[datetime | None] = mapped_column()

    __table_args__ = (
        UniqueConstraint("user_id", "question_id", name="uq_performance_user_question"),
        Index("idx_performance_user_topic", "user_id", "topic"),
    )

    @property
    def accuracy(self) -> float:
        return percentage(self.correct_attempts, self.total_attempts)

    def __repr__(self) -> str:
        return (
            f"<QuestionPerformance user={self.user_id} question={self.question_id} "
            f"{self.correct_attempts}/{self.total_attempts}>"
        )
