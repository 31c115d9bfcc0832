"""
Question bank and quiz session models.

Sessions keep a JSON snapshot of their questions so regenerating the bank
never changes a session that is already running.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, Boolean, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quizcycle.core.scoring import utcnow

from .base import Base


class SessionStatus(str, Enum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class QuestionBankEntry(Base):
    """A pre-generated question stored for a topic and difficulty."""

    __tablename__ = "question_bank"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    topic: Mapped[str] = mapped_column(String(200), nullable=False)
    difficulty: Mapped[str] = mapped_column(String(10), nullable=False)
    question_type: Mapped[str] = mapped_column(String(30), nullable=False)
    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    options: Mapped[list[str]] = mapped_column(JSON, default=list)
    correct_answer: Mapped[str | None] = mapped_column(Text)
    explanation: Mapped[str | None] = mapped_column(Text)
    source_file: Mapped[str | None] = mapped_column(String(500))
    content_hash: Mapped[str | None] = mapped_column(String(64))

    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow)

    __table_args__ = (Index("idx_bank_topic_difficulty", "topic", "difficulty"),)

    def __repr__(self) -> str:
        return f"<QuestionBankEntry id={self.id} topic={self.topic} difficulty={self.difficulty}>"


class QuizSessionRecord(Base):
    """Server-authoritative state of one quiz session."""

    __tablename__ = "quiz_sessions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    topic: Mapped[str] = mapped_column(String(200), nullable=False)
    difficulty: Mapped[str] = mapped_column(String(10), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=SessionStatus.IN_PROGRESS.value, nullable=False
    )
    questions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    requested_count: Mapped[int] = mapped_column(Integer, nullable=False)
    score: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    started_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    ended_at: Mapped[datetime | None] = mapped_column()

    answers: Mapped[list[UserAnswerRecord]] = relationship(
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="UserAnswerRecord.id",
        lazy="selectin",
    )

    @property
    def is_completed(self) -> bool:
        return self.status == SessionStatus.COMPLETED.value

    def answer_for(self, question_id: str) -> UserAnswerRecord | None:
        return next((a for a in self.answers if a.question_id == question_id), None)

    def __repr__(self) -> str:
        return f"<QuizSessionRecord id={self.id} user={self.user_id} status={self.status} score={self.score}>"


class UserAnswerRecord(Base):
    """One answer within a session; abstentions are stored as blank incorrect answers."""

    __tablename__ = "user_answers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(
        ForeignKey("quiz_sessions.id", ondelete="CASCADE"), nullable=False
    )
    question_id: Mapped[str] = mapped_column(String(64), nullable=False)
    answer_text: Mapped[str] = mapped_column(Text, default="", nullable=False)
    is_correct: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    similarity_score: Mapped[float | None] = mapped_column(Float)
    feedback: Mapped[str | None] = mapped_column(Text)
    degraded: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    abstained: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    response_time_ms: Mapped[int | None] = mapped_column(Integer)
    answered_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    session: Mapped[QuizSessionRecord] = relationship(back_populates="answers")

    __table_args__ = (UniqueConstraint("session_id", "question_id", name="uq_answer_session_question"),)

    def __repr__(self) -> str:
        return f"<UserAnswerRecord session={self.session_id} question={self.question_id} correct={self.is_correct}>"
