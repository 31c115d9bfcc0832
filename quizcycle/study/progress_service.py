"""
Topic Progress Service.

Learning cycles per (user, topic): aggregates, completion percentages,
formal level-up checks and the inactivity reset.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta

from loguru import logger
from sqlalchemy.orm import Session, sessionmaker

from quizcycle.core.difficulty import Difficulty
from quizcycle.core.scoring import utcnow
from quizcycle.db import queries
from quizcycle.db.database import unit_of_work
from quizcycle.db.models import TopicProgress
from quizcycle.learning.mastery_tracker import AttemptUpdate, MasteryTracker


class ProgressService:
    """Manages topic progress cycles on top of the mastery tracker."""

    def __init__(
        self,
        mastery: MasteryTracker,
        session_factory: sessionmaker[Session] | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.mastery = mastery
        self.session_factory = session_factory or mastery.session_factory
        self.config = mastery.config
        self.clock = clock

    def update_progress(
        self,
        user_id: str,
        topic: str,
        difficulty: Difficulty | str,
        correct: bool,
        response_time_ms: int | None = None,
        db: Session | None = None,
    ) -> AttemptUpdate:
        """Record an attempt against the active cycle's topic and difficulty aggregates."""
        return self.mastery.record_attempt(
            user_id, topic, difficulty, correct, response_time_ms=response_time_ms, db=db
        )

    def user_progress(self, user_id: str, active_only: bool = False) -> list[TopicProgress]:
        with unit_of_work(None, self.session_factory) as session:
            return list(queries.list_progress(session, user_id, active_only=active_only))

    def reset_expired_progress(self, now: datetime | None = None) -> int:
        """
        Close every active cycle idle for longer than the configured window.

        Each expired record is deactivated and a fresh active one is opened
        for the same user and topic.

        Returns:
            Number of cycles reset
        """
        now = now or self.clock()
        cutoff = now - timedelta(days=self.config.cycle_days)
        with unit_of_work(None, self.session_factory) as session:
            expired = list(queries.expired_progress(session, cutoff))
            for progress in expired:
                self._restart(session, progress, now)
        logger.info(f"Reset {len(expired)} expired progress records")
        return len(expired)

    def reset_progress(self, user_id: str, topic: str) -> TopicProgress:
        """Start a fresh cycle for the user and topic now."""
        now = self.clock()
        with unit_of_work(None, self.session_factory) as session:
            current = self.mastery.active_progress(user_id, topic, db=session)
            fresh = self._restart(session, current, now)
        logger.info(f"Reset progress for {user_id}/{topic}")
        return fresh

    def current_difficulty(self, user_id: str, topic: str) -> Difficulty:
        """Easiest difficulty not yet formally levelled up; HARD when all are."""
        with unit_of_work(None, self.session_factory) as session:
            for level in Difficulty.ordered():
                if not self.mastery.should_advance(user_id, topic, level, db=session):
                    return level
        return Difficulty.HARD

    def should_progress_to_difficulty(
        self, user_id: str, topic: str, target: Difficulty | str | None = None
    ) -> bool:
        """
        Whether the level-up gate (min_questions attempts at >= progression
        threshold) is met for moving to ``target``.

        EASY is always open. Other targets require the level just below them to
        pass the gate. Without a target, the current difficulty is checked.
        """
        if target is None:
            current = self.current_difficulty(user_id, topic)
            return self.mastery.should_advance(user_id, topic, current)
        gate = Difficulty.parse(target).predecessor()
        if gate is None:
            return True
        return self.mastery.should_advance(user_id, topic, gate)

    def topic_completion(self, user_id: str, topic: str) -> float:
        with unit_of_work(None, self.session_factory) as session:
            progress = queries.get_active_progress(session, user_id, topic)
            return progress.overall_score if progress else 0.0

    def difficulty_completion(self, user_id: str, topic: str, difficulty: Difficulty | str) -> float:
        return self.mastery.accuracy(self.mastery.get_record(user_id, topic, difficulty))

    def _restart(self, session: Session, progress: TopicProgress, now: datetime) -> TopicProgress:
        progress.active = False
        fresh = TopicProgress(
            user_id=progress.user_id,
            topic=progress.topic,
            overall_score=0.0,
            questions_attempted=0,
            questions_correct=0,
            active=True,
            start_date=now,
        )
        session.add(fresh)
        session.flush()
        return fresh
