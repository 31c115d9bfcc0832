"""
SM-2 Spaced Repetition Scheduler.

Variant of SM-2 with a binary grade:
- Correct answer: ease factor +0.1, no upper bound
- Incorrect answer: ease factor -0.2, floored at 1.3

The repetition counter advances on every answer, correct or not, so the
1 day / 6 days / interval * ease schedule keeps moving forward after a miss.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from loguru import logger
from sqlalchemy.orm import Session, sessionmaker

from quizcycle.core.scoring import round_half_up, utcnow
from quizcycle.db import queries
from quizcycle.db.database import unit_of_work
from quizcycle.db.models import SpacedRepetitionRecord

# =============================================================================
# SM-2 Algorithm
# =============================================================================


@dataclass
class SM2Config:
    """Configuration for the SM-2 variant."""

    initial_ease: float = 2.5
    minimum_ease: float = 1.3
    first_interval: int = 1  # Days after first repetition
    second_interval: int = 6  # Days after second repetition
    correct_bonus: float = 0.1
    incorrect_penalty: float = 0.2

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SM2Config:
        return cls(**data)


def next_ease_factor(ease: float, correct: bool, config: SM2Config) -> float:
    if correct:
        return round(ease + config.correct_bonus, 4)
    return max(config.minimum_ease, round(ease - config.incorrect_penalty, 4))


def next_interval(repetition_number: int, previous_interval: int, ease: float, config: SM2Config) -> int:
    """
    Interval for the given (already incremented) repetition number.

    Args:
        repetition_number: Repetition count after this answer
        previous_interval: Interval before this answer
        ease: Ease factor after this answer

    Returns:
        Interval in days
    """
    if repetition_number == 1:
        return config.first_interval
    if repetition_number == 2:
        return config.second_interval
    return round_half_up(previous_interval * ease)


class SpacedRepetitionScheduler:
    """
    Per (user, question) review scheduling.

    Records are created on first exposure with the question immediately due,
    updated on every answer and never deleted. A question without a record
    counts as due.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        config: SM2Config | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize the scheduler.

        Args:
            session_factory: Database session factory (process default if None)
            config: SM-2 parameters (uses defaults if None)
            clock: Source of "now", injectable for tests
        """
        self.session_factory = session_factory
        self.config = config or SM2Config()
        self.clock = clock

    def apply_answer(self, record: SpacedRepetitionRecord, correct: bool, now: datetime) -> SpacedRepetitionRecord:
        """
        Advance a record by one answer.

        The new interval uses the updated ease factor and the interval
        from before this answer.
        """
        record.ease_factor = next_ease_factor(record.ease_factor, correct, self.config)
        if correct:
            record.consecutive_correct += 1
            record.consecutive_incorrect = 0
        else:
            record.consecutive_incorrect += 1
            record.consecutive_correct = 0

        record.repetition_number += 1
        record.interval_days = next_interval(
            record.repetition_number, record.interval_days, record.ease_factor, self.config
        )
        record.next_review_date = now + timedelta(days=record.interval_days)
        record.last_review_date = now
        return record

    def initialize(self, user_id: str, question_id: str, db: Session | None = None) -> SpacedRepetitionRecord:
        """Return the existing record or create one that is due now."""
        with unit_of_work(db, self.session_factory) as session:
            return self._get_or_create(session, user_id, question_id)

    def record_answer(
        self,
        user_id: str,
        question_id: str,
        correct: bool,
        db: Session | None = None,
    ) -> SpacedRepetitionRecord:
        """Fetch or create the record, then apply one answer to it."""
        with unit_of_work(db, self.session_factory) as session:
            record = self._get_or_create(session, user_id, question_id)
            self.apply_answer(record, correct, self.clock())
            session.flush()
            logger.debug(
                f"SM-2 {user_id}/{question_id}: correct={correct} rep={record.repetition_number} "
                f"ease={record.ease_factor:.2f} interval={record.interval_days}d"
            )
            return record

    def due_questions(
        self, user_id: str, limit: int | None = None, db: Session | None = None
    ) -> list[SpacedRepetitionRecord]:
        """Due records for the user, earliest next review first."""
        with unit_of_work(db, self.session_factory) as session:
            return list(queries.due_sr_records(session, user_id, self.clock(), limit))

    def is_due(self, user_id: str, question_id: str, db: Session | None = None) -> bool:
        with unit_of_work(db, self.session_factory) as session:
            record = queries.get_sr_record(session, user_id, question_id)
            return record is None or record.is_due(self.clock())

    def count_due(self, user_id: str, db: Session | None = None) -> int:
        with unit_of_work(db, self.session_factory) as session:
            return queries.count_due_sr_records(session, user_id, self.clock())

    def get_record(
        self, user_id: str, question_id: str, db: Session | None = None
    ) -> SpacedRepetitionRecord | None:
        with unit_of_work(db, self.session_factory) as session:
            return queries.get_sr_record(session, user_id, question_id)

    def _get_or_create(self, session: Session, user_id: str, question_id: str) -> SpacedRepetitionRecord:
        record = queries.get_sr_record(session, user_id, question_id)
        if record is not None:
            return record
        now = self.clock()
        record = SpacedRepetitionRecord(
            user_id=user_id,
            question_id=question_id,
            repetition_number=0,
            ease_factor=self.config.initial_ease,
            interval_days=0,
            next_review_date=now,
            consecutive_correct=0,
            consecutive_incorrect=0,
            created_at=now,
        )
        session.add(record)
        session.flush()
        logger.debug(f"Initialized SM-2 record for {user_id}/{question_id}")
        return record
