"""
Quiz Session Engine.

Session lifecycle: IN_PROGRESS -> COMPLETED (one way).

- start_session: select questions, check integrity, persist the session
- submit_answer: validate by question type, then update score, spaced
  repetition, mastery and question history in one transaction; momentum
  is updated once that transaction has committed
- end_session: score abstentions as wrong, reveal answers, fix the score
  denominator to the total question count

Mutations of one session are serialized through a per-session lock.
Different sessions never wait on each other.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from loguru import logger
from sqlalchemy.orm import Session, sessionmaker

from quizcycle.core.difficulty import Difficulty
from quizcycle.core.exceptions import (
    DataIntegrityError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
)
from quizcycle.core.locks import KeyedLock
from quizcycle.core.scoring import percentage, utcnow
from quizcycle.db import queries
from quizcycle.db.database import session_scope
from quizcycle.db.models import QuizSessionRecord, SessionStatus, UserAnswerRecord
from quizcycle.learning.question_selector import QuestionSelector
from quizcycle.questions import get_validator
from quizcycle.questions.base import AnswerEvaluatorLike, AnswerResult, Question

# =============================================================================
# Client-visible views
# =============================================================================


@dataclass
class AnswerView:
    """An answer as shown to the client."""

    question_id: str
    answer_text: str
    is_correct: bool
    answered_at: datetime
    feedback: str | None = None
    similarity_score: float | None = None
    degraded: bool = False
    abstained: bool = False


@dataclass
class SessionView:
    """
    Client copy of a session.

    Correct answers and explanations are hidden for questions that have not
    been answered yet, until the session is completed.
    """

    id: str
    user_id: str
    topic: str
    difficulty: Difficulty
    status: SessionStatus
    score: float
    requested_count: int
    questions: list[Question] = field(default_factory=list)
    answers: list[AnswerView] = field(default_factory=list)
    started_at: datetime | None = None
    ended_at: datetime | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == SessionStatus.COMPLETED

    @property
    def answered_count(self) -> int:
        return len(self.answers)

    @property
    def unanswered(self) -> list[Question]:
        answered = {a.question_id for a in self.answers}
        return [q for q in self.questions if q.id not in answered]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "topic": self.topic,
            "difficulty": self.difficulty.value,
            "status": self.status.value,
            "score": self.score,
            "requested_count": self.requested_count,
            "questions": [q.to_dict() for q in self.questions],
            "answers": [
                {
                    "question_id": a.question_id,
                    "answer_text": a.answer_text,
                    "is_correct": a.is_correct,
                    "answered_at": a.answered_at.isoformat(),
                    "feedback": a.feedback,
                }
                for a in self.answers
            ],
        }


def to_view(record: QuizSessionRecord) -> SessionView:
    completed = record.is_completed
    answered = {a.question_id for a in record.answers}
    questions = []
    for data in record.questions:
        question = Question.from_dict(data)
        questions.append(question if completed or question.id in answered else question.without_answer())
    return SessionView(
        id=record.id,
        user_id=record.user_id,
        topic=record.topic,
        difficulty=Difficulty.parse(record.difficulty),
        status=SessionStatus(record.status),
        score=record.score,
        requested_count=record.requested_count,
        questions=questions,
        answers=[
            AnswerView(
                question_id=a.question_id,
                answer_text=a.answer_text,
                is_correct=a.is_correct,
                answered_at=a.answered_at,
                feedback=a.feedback,
                similarity_score=a.similarity_score,
                degraded=a.degraded,
                abstained=a.abstained,
            )
            for a in record.answers
        ],
        started_at=record.started_at,
        ended_at=record.ended_at,
    )


# =============================================================================
# Engine
# =============================================================================


class QuizSessionEngine:
    """Owns quiz sessions and orchestrates the trackers."""

    def __init__(
        self,
        selector: QuestionSelector,
        session_factory: sessionmaker[Session] | None = None,
        evaluator: AnswerEvaluatorLike | None = None,
        max_question_count: int = 50,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        """
        Initialize the engine.

        Args:
            selector: Question selector (also supplies the trackers)
            session_factory: Database session factory (process default if None)
            evaluator: LLM evaluator for free-text answers; None grades by exact match
            max_question_count: Upper bound on questions per session
            clock: Source of "now", injectable for tests
            id_factory: Session id generator
        """
        self.selector = selector
        self.scheduler = selector.scheduler
        self.mastery = selector.mastery
        self.momentum = selector.momentum
        self.session_factory = session_factory
        self.evaluator = evaluator
        self.max_question_count = max_question_count
        self.clock = clock
        self._id_factory = id_factory
        self._locks = KeyedLock()

    # ========================================
    # Lifecycle
    # ========================================

    def start_session(
        self,
        user_id: str,
        topic: str,
        difficulty: Difficulty | str,
        count: int,
    ) -> SessionView:
        """
        Start a session with up to ``count`` questions.

        Raises:
            InvalidArgumentError: Bad count, difficulty, user or topic
            NotFoundError: No questions available for the topic
            DataIntegrityError: A selected question has no correct answer
        """
        level = Difficulty.parse(difficulty)
        if not user_id or not topic:
            raise InvalidArgumentError("User and topic are required")
        if not 1 <= count <= self.max_question_count:
            raise InvalidArgumentError(f"Question count must be between 1 and {self.max_question_count}")

        questions = self.selector.select_for_session(user_id, topic, level, count)
        if not questions:
            raise NotFoundError(f"No questions available for topic {topic!r}")
        self._check_integrity(questions)
        if len(questions) < count:
            logger.warning(f"Only {len(questions)}/{count} questions available for {user_id}/{topic}")

        session_id = self._id_factory()
        now = self.clock()
        with session_scope(self.session_factory) as db:
            record = QuizSessionRecord(
                id=session_id,
                user_id=user_id,
                topic=topic,
                difficulty=level.value,
                status=SessionStatus.IN_PROGRESS.value,
                questions=[q.to_dict() for q in questions],
                requested_count=count,
                score=0.0,
                started_at=now,
            )
            db.add(record)
            for question in questions:
                self.scheduler.initialize(user_id, question.id, db=db)
            db.flush()
            view = to_view(record)

        self.momentum.initialize(session_id, user_id)
        logger.info(f"Started session {session_id} for {user_id}: {topic} ({level.value}), {len(questions)} questions")
        return view

    def submit_answer(
        self,
        session_id: str,
        question_id: str,
        answer_text: str,
        response_time_ms: int | None = None,
    ) -> AnswerResult:
        """
        Grade and record one answer.

        Args:
            session_id: Session id
            question_id: Question being answered
            answer_text: Raw answer; blank counts as wrong
            response_time_ms: Time taken; defaults to time since the previous answer

        Raises:
            NotFoundError: Unknown session or question
            InvalidStateError: Session completed or question already answered
            InvalidArgumentError: Malformed multiple choice or true/false answer
        """
        if response_time_ms is not None and response_time_ms < 0:
            raise InvalidArgumentError("Response time cannot be negative")

        with self._locks.hold(session_id):
            record = self._load(session_id)
            self._require_in_progress(record)
            question = self._find_question(record, question_id)
            if record.answer_for(question_id) is not None:
                raise InvalidStateError(f"Question {question_id} was already answered")

            if response_time_ms is None:
                response_time_ms = self._elapsed_ms(record)

            # Grading may call the LLM; keep it outside the transaction
            validator = get_validator(question.question_type)
            result = validator.check(question, answer_text or "", evaluator=self.evaluator)

            with session_scope(self.session_factory) as db:
                record = self._get(db, session_id)
                record.answers.append(
                    UserAnswerRecord(
                        question_id=question.id,
                        answer_text=answer_text or "",
                        is_correct=result.correct,
                        similarity_score=result.similarity_score,
                        feedback=result.feedback,
                        degraded=result.degraded,
                        abstained=False,
                        response_time_ms=response_time_ms,
                        answered_at=self.clock(),
                    )
                )
                correct = sum(1 for a in record.answers if a.is_correct)
                record.score = percentage(correct, max(1, len(record.answers)))

                self.scheduler.record_answer(record.user_id, question.id, result.correct, db=db)
                self.mastery.record_attempt(
                    record.user_id,
                    question.topic,
                    question.difficulty,
                    result.correct,
                    response_time_ms=response_time_ms,
                    question_id=question.id,
                    db=db,
                )
                user_id = record.user_id
                score = record.score

            self.momentum.record_answer(session_id, user_id, result.correct, response_time_ms)

        logger.debug(
            f"Session {session_id}: {question_id} correct={result.correct} "
            f"degraded={result.degraded} score={score:.1f}"
        )
        return result

    def end_session(self, session_id: str) -> SessionView:
        """
        Complete the session.

        Unanswered questions get a blank wrong answer (also counted against
        mastery) and the score becomes correct / total questions.

        Raises:
            NotFoundError: Unknown session
            InvalidStateError: Session already completed
        """
        with self._locks.hold(session_id):
            with session_scope(self.session_factory) as db:
                record = self._get(db, session_id)
                if record.is_completed:
                    raise InvalidStateError(f"Session {session_id} is already completed")

                now = self.clock()
                answered = {a.question_id for a in record.answers}
                questions = [Question.from_dict(d) for d in record.questions]
                for question in questions:
                    if question.id in answered:
                        continue
                    record.answers.append(
                        UserAnswerRecord(
                            question_id=question.id,
                            answer_text="",
                            is_correct=False,
                            abstained=True,
                            answered_at=now,
                        )
                    )
                    self.mastery.record_attempt(
                        record.user_id, question.topic, question.difficulty, False, db=db
                    )

                correct = sum(1 for a in record.answers if a.is_correct)
                record.score = percentage(correct, len(questions))
                record.status = SessionStatus.COMPLETED.value
                record.ended_at = now
                db.flush()
                view = to_view(record)

            final = self.momentum.discard(session_id)

        logger.info(
            f"Ended session {session_id}: score={view.score:.1f} "
            f"({correct}/{len(questions)}), momentum={final.momentum_score if final else 0.0:.1f}"
        )
        return view

    def extend_session(self, session_id: str, count: int) -> list[Question]:
        """
        Append momentum-selected questions to a live session.

        Returns:
            The added questions, answers hidden (may be fewer than ``count``)
        """
        with self._locks.hold(session_id):
            record = self._load(session_id)
            self._require_in_progress(record)
            existing = [d["id"] for d in record.questions]
            if count < 1 or len(existing) + count > self.max_question_count:
                raise InvalidArgumentError(
                    f"Cannot add {count} questions to a session of {len(existing)} "
                    f"(maximum {self.max_question_count})"
                )

            added = self.selector.select_by_momentum(
                record.user_id, record.topic, session_id, count, exclude_ids=existing
            )
            self._check_integrity(added)
            if added:
                with session_scope(self.session_factory) as db:
                    record = self._get(db, session_id)
                    # Reassign so the JSON column is marked dirty
                    record.questions = list(record.questions) + [q.to_dict() for q in added]
                    for question in added:
                        self.scheduler.initialize(record.user_id, question.id, db=db)

        logger.info(f"Extended session {session_id} with {len(added)}/{count} questions")
        return [q.without_answer() for q in added]

    def get_session(self, session_id: str) -> SessionView | None:
        """Client copy of the session, or None if it does not exist."""
        with session_scope(self.session_factory) as db:
            record = queries.get_quiz_session(db, session_id)
            return to_view(record) if record is not None else None

    # ========================================
    # Internals
    # ========================================

    def _check_integrity(self, questions: list[Question]) -> None:
        missing = [q.id for q in questions if not q.has_answer]
        if missing:
            logger.error(f"Questions without a correct answer: {missing}")
            raise DataIntegrityError(f"Questions without a correct answer: {', '.join(missing)}")

    def _get(self, db: Session, session_id: str) -> QuizSessionRecord:
        record = queries.get_quiz_session(db, session_id)
        if record is None:
            raise NotFoundError(f"Session not found: {session_id}")
        return record

    def _load(self, session_id: str) -> QuizSessionRecord:
        with session_scope(self.session_factory) as db:
            return self._get(db, session_id)

    @staticmethod
    def _require_in_progress(record: QuizSessionRecord) -> None:
        if record.is_completed:
            raise InvalidStateError(f"Session {record.id} is already completed")

    @staticmethod
    def _find_question(record: QuizSessionRecord, question_id: str) -> Question:
        for data in record.questions:
            if data["id"] == question_id:
                return Question.from_dict(data)
        raise NotFoundError(f"Question {question_id} is not part of session {record.id}")

    def _elapsed_ms(self, record: QuizSessionRecord) -> int:
        reference = max((a.answered_at for a in record.answers), default=record.started_at)
        return max(0, int((self.clock() - reference).total_seconds() * 1000))
