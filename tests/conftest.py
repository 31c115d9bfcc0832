"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import random
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from quizcycle.core.difficulty import Difficulty  # noqa: E402
from quizcycle.db.database import create_session_factory, init_db  # noqa: E402
from quizcycle.delivery.scheduler import SpacedRepetitionScheduler  # noqa: E402
from quizcycle.delivery.telemetry import SessionMomentumTracker  # noqa: E402
from quizcycle.learning.mastery_tracker import MasteryTracker  # noqa: E402
from quizcycle.learning.question_selector import QuestionSelector  # noqa: E402
from quizcycle.questions.base import Question, QuestionType  # noqa: E402
from quizcycle.quiz.question_bank import QuestionBank  # noqa: E402
from quizcycle.study.progress_service import ProgressService  # noqa: E402
from quizcycle.study.quiz_engine import QuizSessionEngine  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (use a database)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


class FakeClock:
    """Controllable clock; call it to get the current time."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def clock():
    """Clock starting at a fixed instant."""
    return FakeClock(datetime(2024, 3, 1, 9, 0, 0))


@pytest.fixture
def session_factory(tmp_path):
    """Session factory bound to a fresh SQLite file with all tables created."""
    factory = create_session_factory(f"sqlite:///{tmp_path / 'quizcycle-test.db'}")
    init_db(factory)
    yield factory
    factory.kw["bind"].dispose()


@pytest.fixture
def make_question():
    """Factory for questions with sensible defaults."""
    counter = {"n": 0}

    def _make(
        topic: str = "networking",
        difficulty: Difficulty = Difficulty.EASY,
        question_type: QuestionType = QuestionType.MULTIPLE_CHOICE,
        **overrides,
    ) -> Question:
        counter["n"] += 1
        n = counter["n"]
        defaults = {
            "id": f"q-{topic}-{difficulty.value.lower()}-{n}",
            "topic": topic,
            "difficulty": difficulty,
            "question_type": question_type,
            "prompt": f"Question {n} about {topic}?",
            "options": ("alpha", "beta", "gamma", "delta")
            if question_type == QuestionType.MULTIPLE_CHOICE
            else (),
            "correct_answer": {
                QuestionType.MULTIPLE_CHOICE: "beta",
                QuestionType.TRUE_FALSE: "true",
            }.get(question_type, "a reference answer"),
            "explanation": f"Explanation {n}",
        }
        defaults.update(overrides)
        return Question(**defaults)

    return _make


@pytest.fixture
def services(session_factory, clock):
    """Fully wired trackers, bank, selector, engine and progress service."""

    class Services:
        pass

    s = Services()
    s.session_factory = session_factory
    s.clock = clock
    s.scheduler = SpacedRepetitionScheduler(session_factory, clock=clock)
    s.mastery = MasteryTracker(session_factory, clock=clock)
    s.momentum = SessionMomentumTracker(clock=clock)
    s.bank = QuestionBank(session_factory, rng=random.Random(7))
    s.selector = QuestionSelector(s.scheduler, s.mastery, s.momentum, s.bank)
    s.engine = QuizSessionEngine(s.selector, session_factory, clock=clock)
    s.progress = ProgressService(s.mastery, session_factory, clock=clock)
    return s
