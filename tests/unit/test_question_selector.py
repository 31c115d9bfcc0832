"""
Unit tests for adaptive question selection.
"""

import pytest

from quizcycle.core.difficulty import Difficulty


@pytest.fixture
def stock_bank(services, make_question):
    """Four questions per difficulty for 'networking', two for 'security'."""
    questions = [make_question(difficulty=level) for level in Difficulty.ordered() for _ in range(4)]
    questions += [make_question(topic="security") for _ in range(2)]
    services.bank.add_questions(questions)
    return questions


def ids(questions):
    return [q.id for q in questions]


class TestSelectForSession:
    """Test session selection."""

    def test_new_user_gets_easy_questions(self, services, stock_bank):
        selected = services.selector.select_for_session("alice", "networking", Difficulty.EASY, 3)
        assert len(selected) == 3
        assert {q.difficulty for q in selected} == {Difficulty.EASY}
        assert {q.topic for q in selected} == {"networking"}

    def test_never_duplicates_or_exceeds_count(self, services, stock_bank):
        for count in (1, 4, 10, 50):
            selected = services.selector.select_for_session("alice", "networking", Difficulty.EASY, count)
            assert len(selected) <= count
            assert len(set(ids(selected))) == len(selected)

    def test_due_questions_come_first(self, services, stock_bank):
        easy = [q for q in stock_bank if q.topic == "networking" and q.difficulty == Difficulty.EASY]
        services.scheduler.initialize("alice", easy[0].id)
        services.mastery.record_attempt("alice", "networking", Difficulty.EASY, True, 1000, question_id=easy[0].id)

        selected = services.selector.select_for_session("alice", "networking", Difficulty.EASY, 3)
        assert selected[0].id == easy[0].id
        assert easy[0].id not in ids(selected[1:])

    def test_due_questions_fill_the_session(self, services, stock_bank):
        easy = [q for q in stock_bank if q.topic == "networking" and q.difficulty == Difficulty.EASY]
        for question in easy[:3]:
            services.scheduler.initialize("alice", question.id)

        selected = services.selector.select_for_session("alice", "networking", Difficulty.EASY, 2)
        assert set(ids(selected)) <= set(ids(easy[:3]))
        assert len(selected) == 2

    def test_due_questions_filtered_by_topic(self, services, stock_bank):
        security = [q for q in stock_bank if q.topic == "security"]
        services.scheduler.initialize("alice", security[0].id)
        selected = services.selector.select_due("alice", "networking", 5)
        assert selected == []

    def test_attempted_questions_are_excluded(self, services, stock_bank):
        easy = [q for q in stock_bank if q.topic == "networking" and q.difficulty == Difficulty.EASY]
        # Attempted but scheduled in the future, so not due
        for question in easy[:2]:
            services.mastery.record_attempt("alice", "networking", Difficulty.EASY, False, 1000, question_id=question.id)
            services.scheduler.record_answer("alice", question.id, False)

        selected = services.selector.select_for_session("alice", "networking", Difficulty.MEDIUM, 10)
        assert not set(ids(selected)) & set(ids(easy[:2]))

    def test_recommended_difficulty_drives_new_questions(self, services, stock_bank):
        for _ in range(3):
            services.mastery.record_attempt("alice", "networking", Difficulty.EASY, True, 1000)
        selected = services.selector.select_for_session("alice", "networking", Difficulty.MEDIUM, 3)
        assert {q.difficulty for q in selected} == {Difficulty.MEDIUM}

    def test_backfills_from_requested_difficulty(self, services, stock_bank):
        """Recommended EASY has four questions; the rest come from the requested HARD."""
        selected = services.selector.select_for_session("alice", "networking", Difficulty.HARD, 6)
        levels = [q.difficulty for q in selected]
        assert levels.count(Difficulty.EASY) == 4
        assert levels.count(Difficulty.HARD) == 2

    def test_short_bank_returns_what_exists(self, services, stock_bank):
        selected = services.selector.select_for_session("alice", "security", Difficulty.EASY, 10)
        assert len(selected) == 2

    def test_unknown_topic_is_empty(self, services, stock_bank):
        assert services.selector.select_for_session("alice", "cooking", Difficulty.EASY, 5) == []

    def test_zero_count(self, services, stock_bank):
        assert services.selector.select_for_session("alice", "networking", Difficulty.EASY, 0) == []


class TestSelectByMomentum:
    """Test momentum-biased selection."""

    def test_struggling_steps_down(self, services, stock_bank):
        for level in (Difficulty.EASY, Difficulty.MEDIUM):
            for _ in range(2):
                services.mastery.record_attempt("alice", "networking", level, True, 1000)
        # Recommended is HARD; struggling drops to MEDIUM
        for _ in range(3):
            services.momentum.record_answer("s1", "alice", False, 95_000)

        selected = services.selector.select_by_momentum("alice", "networking", "s1", 2)
        assert {q.difficulty for q in selected} == {Difficulty.MEDIUM}

    def test_flow_steps_up(self, services, stock_bank):
        for _ in range(3):
            services.momentum.record_answer("s1", "alice", True, 2000)

        selected = services.selector.select_by_momentum("alice", "networking", "s1", 2)
        assert {q.difficulty for q in selected} == {Difficulty.MEDIUM}

    def test_struggling_at_easy_stays_easy(self, services, stock_bank):
        services.momentum.record_answer("s1", "alice", False, 120_000)
        selected = services.selector.select_by_momentum("alice", "networking", "s1", 2)
        assert {q.difficulty for q in selected} == {Difficulty.EASY}

    def test_neutral_uses_progression(self, services, stock_bank):
        services.momentum.record_answer("s1", "alice", True, 60_000)
        services.momentum.record_answer("s1", "alice", False, 60_000)
        selected = services.selector.select_by_momentum("alice", "networking", "s1", 3)
        assert {q.difficulty for q in selected} == {Difficulty.EASY}

    def test_excludes_given_ids(self, services, stock_bank):
        services.momentum.record_answer("s1", "alice", True, 2000)
        medium = [q for q in stock_bank if q.topic == "networking" and q.difficulty == Difficulty.MEDIUM]
        selected = services.selector.select_by_momentum(
            "alice", "networking", "s1", 10, exclude_ids=ids(medium[:3])
        )
        assert ids(selected) == [medium[3].id]
