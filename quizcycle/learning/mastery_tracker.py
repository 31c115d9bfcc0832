"""
Mastery Tracker.

Tracks accuracy per (user, topic, difficulty) inside the active topic
progress cycle and gates difficulty:
- Proficiency: accuracy >= pass threshold (70%) with at least one attempt
- Formal level-up: at least min_questions attempts and accuracy >= 80%

Also keeps per-question attempt history so selection can skip questions the
user has already seen.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from loguru import logger
from sqlalchemy.orm import Session, sessionmaker

from quizcycle.core.difficulty import Difficulty
from quizcycle.core.scoring import percentage, running_average, utcnow
from quizcycle.db import queries
from quizcycle.db.database import unit_of_work
from quizcycle.db.models import MasteryRecord, QuestionPerformance, TopicProgress


@dataclass
class LearningCycleConfig:
    """Thresholds for proficiency, level-up and progress expiry."""

    cycle_days: int = 10
    min_questions: int = 20
    pass_threshold: float = 70.0
    progression_threshold: float = 80.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LearningCycleConfig:
        return cls(**data)


@dataclass
class AttemptUpdate:
    """Snapshot of the records touched by one attempt."""

    topic: str
    difficulty: Difficulty
    correct: bool
    mastery_accuracy: float
    mastery_attempts: int
    topic_score: float


class MasteryTracker:
    """
    Per-topic, per-difficulty mastery backed by the database.

    All methods accept an optional ``db`` session so an answer submission
    can update every tracker in one transaction.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        config: LearningCycleConfig | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.config = config or LearningCycleConfig()
        self.clock = clock

    # ========================================
    # Updates
    # ========================================

    def record_attempt(
        self,
        user_id: str,
        topic: str,
        difficulty: Difficulty | str,
        correct: bool,
        response_time_ms: int | None = None,
        question_id: str | None = None,
        db: Session | None = None,
    ) -> AttemptUpdate:
        """
        Record one attempt at a topic/difficulty.

        Args:
            user_id: Learner id
            topic: Topic name
            difficulty: Difficulty of the answered question
            correct: Whether the answer was correct
            response_time_ms: Time to answer; None leaves the average untouched
                (used for abstentions synthesized at session end)
            question_id: Also update per-question history when given
            db: Outer transaction to join

        Returns:
            AttemptUpdate with the new aggregates
        """
        level = Difficulty.parse(difficulty)
        now = self.clock()
        with unit_of_work(db, self.session_factory) as session:
            progress = self.active_progress(user_id, topic, db=session)
            record = self._get_or_create_mastery(session, progress, level)

            record.total_attempts += 1
            if correct:
                record.correct_attempts += 1
            if response_time_ms is not None:
                record.average_response_time_ms = running_average(
                    record.average_response_time_ms, response_time_ms
                )
            record.last_attempt_at = now
            progress.record(correct, now)

            if question_id is not None:
                self._record_question_attempt(
                    session, user_id, question_id, topic, level, correct, response_time_ms, now
                )
            session.flush()

            logger.debug(
                f"Mastery {user_id}/{topic}/{level.value}: "
                f"{record.correct_attempts}/{record.total_attempts} ({record.accuracy:.1f}%)"
            )
            return AttemptUpdate(
                topic=topic,
                difficulty=level,
                correct=correct,
                mastery_accuracy=record.accuracy,
                mastery_attempts=record.total_attempts,
                topic_score=progress.overall_score,
            )

    def active_progress(self, user_id: str, topic: str, db: Session | None = None) -> TopicProgress:
        """Return the active topic progress, starting a new cycle if none exists."""
        with unit_of_work(db, self.session_factory) as session:
            progress = queries.get_active_progress(session, user_id, topic)
            if progress is None:
                progress = TopicProgress(
                    user_id=user_id,
                    topic=topic,
                    overall_score=0.0,
                    questions_attempted=0,
                    questions_correct=0,
                    active=True,
                    start_date=self.clock(),
                )
                session.add(progress)
                session.flush()
                logger.info(f"Started topic progress for {user_id}/{topic}")
            return progress

    # ========================================
    # Queries
    # ========================================

    @staticmethod
    def accuracy(record: MasteryRecord | None) -> float:
        """Percentage correct, 0 for a missing or empty record."""
        if record is None:
            return 0.0
        return percentage(record.correct_attempts, record.total_attempts)

    def get_record(
        self, user_id: str, topic: str, difficulty: Difficulty | str, db: Session | None = None
    ) -> MasteryRecord | None:
        with unit_of_work(db, self.session_factory) as session:
            progress = queries.get_active_progress(session, user_id, topic)
            if progress is None:
                return None
            return queries.get_mastery_record(session, progress.id, Difficulty.parse(difficulty).value)

    def has_proficiency(
        self, user_id: str, topic: str, difficulty: Difficulty | str, db: Session | None = None
    ) -> bool:
        record = self.get_record(user_id, topic, difficulty, db=db)
        if record is None or record.total_attempts == 0:
            return False
        return self.accuracy(record) >= self.config.pass_threshold

    def recommended_difficulty(self, user_id: str, topic: str, db: Session | None = None) -> Difficulty:
        """First level, easiest first, where the user is not yet proficient; HARD as ceiling."""
        with unit_of_work(db, self.session_factory) as session:
            for level in Difficulty.ordered():
                if not self.has_proficiency(user_id, topic, level, db=session):
                    return level
        return Difficulty.HARD

    def should_advance(
        self, user_id: str, topic: str, difficulty: Difficulty | str, db: Session | None = None
    ) -> bool:
        record = self.get_record(user_id, topic, difficulty, db=db)
        if record is None:
            return False
        return (
            record.total_attempts >= self.config.min_questions
            and self.accuracy(record) >= self.config.progression_threshold
        )

    def attempted_question_ids(
        self, user_id: str, topic: str | None = None, db: Session | None = None
    ) -> set[str]:
        with unit_of_work(db, self.session_factory) as session:
            return queries.attempted_question_ids(session, user_id, topic)

    def question_performance(
        self, user_id: str, question_id: str, db: Session | None = None
    ) -> QuestionPerformance | None:
        with unit_of_work(db, self.session_factory) as session:
            return queries.get_question_performance(session, user_id, question_id)

    # ========================================
    # Internals
    # ========================================

    def _get_or_create_mastery(
        self, session: Session, progress: TopicProgress, level: Difficulty
    ) -> MasteryRecord:
        record = queries.get_mastery_record(session, progress.id, level.value)
        if record is None:
            record = MasteryRecord(
                progress=progress,
                user_id=progress.user_id,
                topic=progress.topic,
                difficulty=level.value,
                total_attempts=0,
                correct_attempts=0,
                average_response_time_ms=0,
            )
            session.add(record)
            session.flush()
        return record

    def _record_question_attempt(
        self,
        session: Session,
        user_id: str,
        question_id: str,
        topic: str,
        level: Difficulty,
        correct: bool,
        response_time_ms: int | None,
        now: datetime,
    ) -> None:
        performance = queries.get_question_performance(session, user_id, question_id)
        if performance is None:
            performance = QuestionPerformance(
                user_id=user_id,
                question_id=question_id,
                topic=topic,
                difficulty=level.value,
                total_attempts=0,
                correct_attempts=0,
                average_response_time_ms=0,
                first_attempt_at=now,
            )
            session.add(performance)

        performance.total_attempts += 1
        if correct:
            performance.correct_attempts += 1
        if response_time_ms is not None:
            performance.average_response_time_ms = running_average(
                performance.average_response_time_ms, response_time_ms
            )
        performance.last_attempt_at = now
