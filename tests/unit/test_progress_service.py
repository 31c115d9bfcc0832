"""
Unit tests for topic progress cycles.
"""

from quizcycle.core.difficulty import Difficulty

USER = "alice"
TOPIC = "networking"


def answer_many(services, difficulty, correct, count):
    for _ in range(count):
        services.progress.update_progress(USER, TOPIC, difficulty, correct, response_time_ms=4000)


class TestUpdateProgress:
    """Test aggregate updates."""

    def test_topic_and_difficulty_completion(self, services):
        services.progress.update_progress(USER, TOPIC, Difficulty.EASY, True)
        services.progress.update_progress(USER, TOPIC, Difficulty.EASY, False)
        services.progress.update_progress(USER, TOPIC, Difficulty.MEDIUM, True)
        services.progress.update_progress(USER, TOPIC, Difficulty.MEDIUM, True)

        assert services.progress.topic_completion(USER, TOPIC) == 75.0
        assert services.progress.difficulty_completion(USER, TOPIC, Difficulty.EASY) == 50.0
        assert services.progress.difficulty_completion(USER, TOPIC, "medium") == 100.0
        assert services.progress.difficulty_completion(USER, TOPIC, Difficulty.HARD) == 0.0

    def test_unknown_topic_completion(self, services):
        assert services.progress.topic_completion(USER, "unknown") == 0.0

    def test_one_active_cycle_per_topic(self, services):
        answer_many(services, Difficulty.EASY, True, 3)
        services.progress.update_progress(USER, "security", Difficulty.EASY, True)

        progress = services.progress.user_progress(USER)
        assert sorted(p.topic for p in progress) == ["networking", "security"]
        assert all(p.active for p in progress)


class TestExpiry:
    """Test the inactivity reset."""

    def test_idle_cycle_is_reset(self, services):
        answer_many(services, Difficulty.EASY, True, 3)
        services.clock.advance(days=11)

        assert services.progress.reset_expired_progress() == 1

        history = services.progress.user_progress(USER)
        assert [p.active for p in history] == [False, True]
        assert history[0].questions_attempted == 3
        fresh = history[1]
        assert fresh.questions_attempted == 0
        assert fresh.start_date == services.clock.now
        assert services.mastery.get_record(USER, TOPIC, Difficulty.EASY) is None
        assert services.mastery.recommended_difficulty(USER, TOPIC) == Difficulty.EASY

    def test_recent_cycle_is_kept(self, services):
        answer_many(services, Difficulty.EASY, True, 1)
        services.clock.advance(days=9)

        assert services.progress.reset_expired_progress() == 0
        assert len(services.progress.user_progress(USER)) == 1

    def test_cycle_without_attempts_is_kept(self, services):
        services.mastery.active_progress(USER, TOPIC)
        services.clock.advance(days=30)
        assert services.progress.reset_expired_progress() == 0

    def test_explicit_now(self, services):
        answer_many(services, Difficulty.EASY, False, 1)
        later = services.clock.now.replace(month=services.clock.now.month + 1)
        assert services.progress.reset_expired_progress(now=later) == 1

    def test_manual_reset(self, services):
        answer_many(services, Difficulty.EASY, True, 2)
        fresh = services.progress.reset_progress(USER, TOPIC)

        assert fresh.active
        assert services.progress.topic_completion(USER, TOPIC) == 0.0
        assert len(services.progress.user_progress(USER, active_only=True)) == 1


class TestDifficultyGates:
    """Test formal level-up checks."""

    def test_new_learner_starts_easy(self, services):
        assert services.progress.current_difficulty(USER, TOPIC) == Difficulty.EASY
        assert services.progress.should_progress_to_difficulty(USER, TOPIC, Difficulty.EASY)
        assert not services.progress.should_progress_to_difficulty(USER, TOPIC, Difficulty.MEDIUM)

    def test_level_up_needs_enough_attempts(self, services):
        answer_many(services, Difficulty.EASY, True, 19)
        assert not services.progress.should_progress_to_difficulty(USER, TOPIC, Difficulty.MEDIUM)

        answer_many(services, Difficulty.EASY, True, 1)
        assert services.progress.should_progress_to_difficulty(USER, TOPIC, Difficulty.MEDIUM)
        assert not services.progress.should_progress_to_difficulty(USER, TOPIC, Difficulty.HARD)
        assert services.progress.current_difficulty(USER, TOPIC) == Difficulty.MEDIUM

    def test_level_up_needs_accuracy(self, services):
        answer_many(services, Difficulty.EASY, True, 15)
        answer_many(services, Difficulty.EASY, False, 5)
        assert not services.progress.should_progress_to_difficulty(USER, TOPIC, Difficulty.MEDIUM)
        assert services.progress.current_difficulty(USER, TOPIC) == Difficulty.EASY

    def test_all_levels_mastered(self, services):
        for level in Difficulty.ordered():
            answer_many(services, level, True, 20)
        assert services.progress.current_difficulty(USER, TOPIC) == Difficulty.HARD
        assert services.progress.should_progress_to_difficulty(USER, TOPIC)
