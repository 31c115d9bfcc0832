"""
Adaptive Question Selection.

Builds the question list for a session from three pressures:
- Spaced repetition debt (due questions always come first)
- Mastery-gated progression (new questions at the recommended difficulty)
- Session momentum (mid-session difficulty shifts)

Selection never returns duplicates and never more than the requested count.
When the bank runs short, fewer questions are returned; the caller decides
whether that is enough.
"""

from __future__ import annotations

from collections.abc import Iterable

from loguru import logger
from sqlalchemy.orm import Session

from quizcycle.core.difficulty import Difficulty
from quizcycle.delivery.scheduler import SpacedRepetitionScheduler
from quizcycle.delivery.telemetry import SessionMomentumTracker
from quizcycle.learning.mastery_tracker import MasteryTracker
from quizcycle.questions.base import Question
from quizcycle.quiz.question_bank import QuestionBank


class QuestionSelector:
    """
    Select questions for quiz sessions and review batches.

    Strategies:
    - select_for_session: due questions, then unseen questions at the recommended difficulty
    - select_by_momentum: step difficulty with the live session's momentum
    """

    def __init__(
        self,
        scheduler: SpacedRepetitionScheduler,
        mastery: MasteryTracker,
        momentum: SessionMomentumTracker,
        bank: QuestionBank,
        due_overfetch: int = 2,
    ):
        """
        Initialize the selector.

        Args:
            scheduler: Spaced repetition state
            mastery: Mastery state and per-question history
            momentum: Live session momentum
            bank: Question bank lookups
            due_overfetch: Multiplier on due fetches to survive topic filtering
        """
        self.scheduler = scheduler
        self.mastery = mastery
        self.momentum = momentum
        self.bank = bank
        self.due_overfetch = max(1, due_overfetch)

    def select_for_session(
        self,
        user_id: str,
        topic: str,
        difficulty: Difficulty | str,
        count: int,
        exclude_ids: Iterable[str] = (),
        db: Session | None = None,
    ) -> list[Question]:
        """
        Questions for a new session.

        Strategy:
        1. Due questions for the topic (over-fetched, then filtered and capped)
        2. If they fill ``count``, return them as-is
        3. Otherwise add unseen questions at the recommended difficulty,
           backfilling from the requested difficulty if that level runs dry

        Args:
            user_id: Learner id
            topic: Topic name
            difficulty: Difficulty the session was requested at
            count: Maximum number of questions
            exclude_ids: Question ids that must not be returned

        Returns:
            Due questions followed by new ones
        """
        if count <= 0:
            return []
        requested = Difficulty.parse(difficulty)
        excluded = set(exclude_ids)

        due = self.select_due(user_id, topic, count, exclude_ids=excluded, db=db)
        if len(due) >= count:
            logger.debug(f"Session for {user_id}/{topic} filled with {len(due)} due questions")
            return due

        excluded.update(q.id for q in due)
        remainder = count - len(due)
        recommended = self.mastery.recommended_difficulty(user_id, topic, db=db)
        new = self._unseen(user_id, topic, recommended, remainder, excluded, db=db)

        if len(new) < remainder and recommended != requested:
            # Backfill from the requested level when the recommended level runs dry
            excluded.update(q.id for q in new)
            new.extend(
                self._unseen(user_id, topic, requested, remainder - len(new), excluded, db=db)
            )

        logger.info(
            f"Selected {len(due)} due + {len(new)} new questions for {user_id}/{topic} "
            f"(requested {count} at {requested.value})"
        )
        return due + new

    def select_due(
        self,
        user_id: str,
        topic: str,
        count: int,
        exclude_ids: Iterable[str] = (),
        db: Session | None = None,
    ) -> list[Question]:
        """Due questions for the topic, earliest review first, capped at ``count``."""
        if count <= 0:
            return []
        excluded = set(exclude_ids)
        records = self.scheduler.due_questions(user_id, limit=count * self.due_overfetch, db=db)
        ordered_ids = [r.question_id for r in records if r.question_id not in excluded]
        questions = self.bank.get_by_ids(dict.fromkeys(ordered_ids), db=db)
        return [q for q in questions if q.topic == topic][:count]

    def select_by_difficulty_progression(
        self,
        user_id: str,
        topic: str,
        count: int,
        exclude_ids: Iterable[str] = (),
        db: Session | None = None,
    ) -> list[Question]:
        """Unseen questions at the difficulty the mastery tracker recommends."""
        if count <= 0:
            return []
        level = self.mastery.recommended_difficulty(user_id, topic, db=db)
        return self._unseen(user_id, topic, level, count, set(exclude_ids), db=db)

    def select_by_momentum(
        self,
        user_id: str,
        topic: str,
        session_id: str,
        count: int,
        exclude_ids: Iterable[str] = (),
        db: Session | None = None,
    ) -> list[Question]:
        """
        Mid-session selection biased by momentum.

        Struggling steps one level below the recommended difficulty, flow steps
        one level above (clamped at EASY/HARD); neutral momentum uses the
        plain progression selection.
        """
        if count <= 0:
            return []
        recommended = self.mastery.recommended_difficulty(user_id, topic, db=db)
        if self.momentum.is_struggling(session_id):
            level = recommended.step_down()
        elif self.momentum.is_in_flow(session_id):
            level = recommended.step_up()
        else:
            return self.select_by_difficulty_progression(user_id, topic, count, exclude_ids, db=db)

        logger.debug(
            f"Momentum {self.momentum.momentum_score(session_id):.1f} for {session_id}: "
            f"{recommended.value} -> {level.value}"
        )
        return self._unseen(user_id, topic, level, count, set(exclude_ids), db=db)

    def _unseen(
        self,
        user_id: str,
        topic: str,
        level: Difficulty,
        count: int,
        excluded: set[str],
        db: Session | None = None,
    ) -> list[Question]:
        attempted = self.mastery.attempted_question_ids(user_id, topic, db=db)
        pool = self.bank.questions_for(topic, level, exclude_ids=excluded | attempted, db=db)
        return pool[:count]
