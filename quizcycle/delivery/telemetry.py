"""
Session Momentum Tracking.

Short-horizon signal scoped to one live quiz session:
- Accuracy so far
- Two-point running average of response time
- Momentum score blending both (0-100)

Momentum steers mid-session difficulty only. It is kept in memory and
discarded when the session ends; it is not learner progress.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from loguru import logger

from quizcycle.core.locks import KeyedLock
from quizcycle.core.scoring import percentage, running_average, utcnow

# =============================================================================
# Momentum Score
# =============================================================================


@dataclass
class MomentumConfig:
    """Weights and thresholds for the momentum score."""

    accuracy_weight: float = 0.7
    speed_weight: float = 0.3
    flow_threshold: float = 70.0  # At or above: step difficulty up
    struggle_threshold: float = 30.0  # At or below: step difficulty down

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MomentumConfig:
        return cls(**data)


def compute_momentum_score(accuracy: float, average_response_time_ms: int, config: MomentumConfig) -> float:
    """
    Blend accuracy and speed into a 0-100 score.

    The speed term loses one point per second of average response time and
    bottoms out at 0 from 100 seconds on.
    """
    speed = max(0.0, 100.0 - average_response_time_ms / 1000.0)
    return config.accuracy_weight * accuracy + config.speed_weight * speed


@dataclass
class SessionMomentum:
    """Live momentum state for one session."""

    session_id: str
    user_id: str
    questions_answered: int = 0
    correct_answers: int = 0
    average_response_time_ms: int = 0
    momentum_score: float = 0.0
    started_at: datetime = field(default_factory=utcnow)
    last_updated: datetime | None = None

    @property
    def accuracy(self) -> float:
        return percentage(self.correct_answers, self.questions_answered)


# =============================================================================
# Tracker
# =============================================================================


class SessionMomentumTracker:
    """
    In-memory momentum per session id.

    Updates for one session are serialized; different sessions never wait on
    each other. Accessors return neutral defaults for unknown sessions.
    """

    def __init__(
        self,
        config: MomentumConfig | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.config = config or MomentumConfig()
        self.clock = clock
        self._sessions: dict[str, SessionMomentum] = {}
        self._locks = KeyedLock()

    def initialize(self, session_id: str, user_id: str) -> SessionMomentum:
        """Zero-valued record for the session; returns the existing one if present."""
        with self._locks.hold(session_id):
            return self._get_or_create(session_id, user_id)

    def record_answer(
        self,
        session_id: str,
        user_id: str,
        correct: bool,
        response_time_ms: int,
    ) -> SessionMomentum:
        with self._locks.hold(session_id):
            momentum = self._get_or_create(session_id, user_id)
            momentum.questions_answered += 1
            if correct:
                momentum.correct_answers += 1
            momentum.average_response_time_ms = running_average(
                momentum.average_response_time_ms, response_time_ms
            )
            momentum.momentum_score = compute_momentum_score(
                momentum.accuracy, momentum.average_response_time_ms, self.config
            )
            momentum.last_updated = self.clock()

        logger.debug(
            f"Momentum {session_id}: {momentum.correct_answers}/{momentum.questions_answered} "
            f"avg={momentum.average_response_time_ms}ms score={momentum.momentum_score:.1f}"
        )
        return momentum

    def get(self, session_id: str) -> SessionMomentum | None:
        return self._sessions.get(session_id)

    def discard(self, session_id: str) -> SessionMomentum | None:
        """Drop the session's momentum, returning the final state if any."""
        with self._locks.hold(session_id):
            return self._sessions.pop(session_id, None)

    def momentum_score(self, session_id: str) -> float:
        momentum = self._sessions.get(session_id)
        return momentum.momentum_score if momentum else 0.0

    def accuracy(self, session_id: str) -> float:
        momentum = self._sessions.get(session_id)
        return momentum.accuracy if momentum else 0.0

    def average_response_time_ms(self, session_id: str) -> int:
        momentum = self._sessions.get(session_id)
        return momentum.average_response_time_ms if momentum else 0

    def is_in_flow(self, session_id: str) -> bool:
        momentum = self._answered(session_id)
        return momentum is not None and momentum.momentum_score >= self.config.flow_threshold

    def is_struggling(self, session_id: str) -> bool:
        momentum = self._answered(session_id)
        return momentum is not None and momentum.momentum_score <= self.config.struggle_threshold

    def _answered(self, session_id: str) -> SessionMomentum | None:
        # No answers yet reads as neutral, not as a zero score
        momentum = self._sessions.get(session_id)
        return momentum if momentum and momentum.questions_answered else None

    def _get_or_create(self, session_id: str, user_id: str) -> SessionMomentum:
        momentum = self._sessions.get(session_id)
        if momentum is None:
            momentum = SessionMomentum(session_id=session_id, user_id=user_id, started_at=self.clock())
            self._sessions[session_id] = momentum
        return momentum
