"""
Centralized ORM queries.

Every tracker and service reads and writes through these helpers so the
lookup keys and orderings live in one place.

Usage:
    from quizcycle.db import queries

    record = queries.get_sr_record(db, user_id, question_id)
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from quizcycle.db.models import (
    MasteryRecord,
    QuestionBankEntry,
    QuestionPerformance,
    QuizSessionRecord,
    SpacedRepetitionRecord,
    TopicProgress,
)

# =============================================================================
# SPACED REPETITION
# =============================================================================


def get_sr_record(db: Session, user_id: str, question_id: str) -> SpacedRepetitionRecord | None:
    stmt = select(SpacedRepetitionRecord).where(
        SpacedRepetitionRecord.user_id == user_id,
        SpacedRepetitionRecord.question_id == question_id,
    )
    return db.scalars(stmt).first()


def due_sr_records(
    db: Session, user_id: str, now: datetime, limit: int | None = None
) -> Sequence[SpacedRepetitionRecord]:
    """Records with next review at or before ``now``, oldest first."""
    stmt = (
        select(SpacedRepetitionRecord)
        .where(
            SpacedRepetitionRecord.user_id == user_id,
            SpacedRepetitionRecord.next_review_date <= now,
        )
        .order_by(SpacedRepetitionRecord.next_review_date.asc(), SpacedRepetitionRecord.id.asc())
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    return db.scalars(stmt).all()


def count_due_sr_records(db: Session, user_id: str, now: datetime) -> int:
    stmt = select(func.count(SpacedRepetitionRecord.id)).where(
        SpacedRepetitionRecord.user_id == user_id,
        SpacedRepetitionRecord.next_review_date <= now,
    )
    return db.scalar(stmt) or 0


# =============================================================================
# TOPIC PROGRESS & MASTERY
# =============================================================================


def get_active_progress(db: Session, user_id: str, topic: str) -> TopicProgress | None:
    stmt = (
        select(TopicProgress)
        .where(
            TopicProgress.user_id == user_id,
            TopicProgress.topic == topic,
            TopicProgress.active.is_(True),
        )
        .order_by(TopicProgress.id.desc())
    )
    return db.scalars(stmt).first()


def list_progress(db: Session, user_id: str, active_only: bool = False) -> Sequence[TopicProgress]:
    stmt = select(TopicProgress).where(TopicProgress.user_id == user_id)
    if active_only:
        stmt = stmt.where(TopicProgress.active.is_(True))
    return db.scalars(stmt.order_by(TopicProgress.topic, TopicProgress.id)).all()


def expired_progress(db: Session, cutoff: datetime) -> Sequence[TopicProgress]:
    """Active records whose last attempt is older than ``cutoff``."""
    stmt = select(TopicProgress).where(
        TopicProgress.active.is_(True),
        TopicProgress.last_attempt_date.is_not(None),
        TopicProgress.last_attempt_date < cutoff,
    )
    return db.scalars(stmt).all()


def get_mastery_record(db: Session, progress_id: int, difficulty: str) -> MasteryRecord | None:
    stmt = select(MasteryRecord).where(
        MasteryRecord.progress_id == progress_id,
        MasteryRecord.difficulty == difficulty,
    )
    return db.scalars(stmt).first()


def get_question_performance(db: Session, user_id: str, question_id: str) -> QuestionPerformance | None:
    stmt = select(QuestionPerformance).where(
        QuestionPerformance.user_id == user_id,
        QuestionPerformance.question_id == question_id,
    )
    return db.scalars(stmt).first()


def attempted_question_ids(db: Session, user_id: str, topic: str | None = None) -> set[str]:
    stmt = select(QuestionPerformance.question_id).where(
        QuestionPerformance.user_id == user_id,
        QuestionPerformance.total_attempts > 0,
    )
    if topic is not None:
        stmt = stmt.where(QuestionPerformance.topic == topic)
    return set(db.scalars(stmt).all())


# =============================================================================
# QUESTION BANK
# =============================================================================


def bank_entries(
    db: Session,
    topic: str,
    difficulty: str | None = None,
    exclude_ids: Iterable[str] = (),
) -> Sequence[QuestionBankEntry]:
    stmt = select(QuestionBankEntry).where(QuestionBankEntry.topic == topic)
    if difficulty is not None:
        stmt = stmt.where(QuestionBankEntry.difficulty == difficulty)
    excluded = list(exclude_ids)
    if excluded:
        stmt = stmt.where(QuestionBankEntry.id.not_in(excluded))
    return db.scalars(stmt.order_by(QuestionBankEntry.created_at, QuestionBankEntry.id)).all()


def bank_entries_by_ids(db: Session, ids: Iterable[str]) -> Sequence[QuestionBankEntry]:
    wanted = list(ids)
    if not wanted:
        return []
    return db.scalars(select(QuestionBankEntry).where(QuestionBankEntry.id.in_(wanted))).all()


def bank_counts(db: Session) -> list[tuple[str, str, int]]:
    """(topic, difficulty, count) rows for every populated bucket."""
    stmt = (
        select(QuestionBankEntry.topic, QuestionBankEntry.difficulty, func.count(QuestionBankEntry.id))
        .group_by(QuestionBankEntry.topic, QuestionBankEntry.difficulty)
        .order_by(QuestionBankEntry.topic, QuestionBankEntry.difficulty)
    )
    return [(topic, difficulty, count) for topic, difficulty, count in db.execute(stmt).all()]


def topic_content_hash(db: Session, topic: str) -> str | None:
    stmt = select(QuestionBankEntry.content_hash).where(QuestionBankEntry.topic == topic).limit(1)
    return db.scalar(stmt)


def delete_topic_entries(db: Session, topic: str) -> int:
    entries = db.scalars(select(QuestionBankEntry).where(QuestionBankEntry.topic == topic)).all()
    for entry in entries:
        db.delete(entry)
    return len(entries)


# =============================================================================
# QUIZ SESSIONS
# =============================================================================


def get_quiz_session(db: Session, session_id: str) -> QuizSessionRecord | None:
    return db.get(QuizSessionRecord, session_id)
