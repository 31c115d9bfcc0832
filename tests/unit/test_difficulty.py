"""
Unit tests for the ordered difficulty enum.
"""

import pytest

from quizcycle.core.difficulty import Difficulty
from quizcycle.core.exceptions import InvalidArgumentError


class TestOrdering:
    """Test ordering and neighbours."""

    def test_ordered_easy_to_hard(self):
        assert Difficulty.ordered() == [Difficulty.EASY, Difficulty.MEDIUM, Difficulty.HARD]

    def test_comparison_follows_rank(self):
        assert Difficulty.EASY < Difficulty.MEDIUM < Difficulty.HARD

    def test_all_comparisons_follow_rank(self):
        """Not the str ordering of the member values."""
        assert Difficulty.HARD > Difficulty.MEDIUM
        assert Difficulty.EASY <= Difficulty.EASY
        assert Difficulty.MEDIUM >= Difficulty.EASY
        assert not Difficulty.EASY >= Difficulty.MEDIUM
        assert not Difficulty.MEDIUM > Difficulty.HARD

    def test_max_and_sorted(self):
        levels = [Difficulty.MEDIUM, Difficulty.HARD, Difficulty.EASY]
        assert max(levels) == Difficulty.HARD
        assert min(levels) == Difficulty.EASY
        assert sorted(levels) == Difficulty.ordered()

    def test_successor_and_predecessor(self):
        assert Difficulty.EASY.successor() == Difficulty.MEDIUM
        assert Difficulty.HARD.successor() is None
        assert Difficulty.MEDIUM.predecessor() == Difficulty.EASY
        assert Difficulty.EASY.predecessor() is None

    def test_steps_clamp_at_the_ends(self):
        """Stepping past an extreme stays at the extreme."""
        assert Difficulty.HARD.step_up() == Difficulty.HARD
        assert Difficulty.EASY.step_down() == Difficulty.EASY
        assert Difficulty.MEDIUM.step_up() == Difficulty.HARD
        assert Difficulty.MEDIUM.step_down() == Difficulty.EASY


class TestParse:
    """Test parsing from user input."""

    def test_parse_is_case_insensitive(self):
        assert Difficulty.parse(" medium ") == Difficulty.MEDIUM

    def test_parse_passes_enum_through(self):
        assert Difficulty.parse(Difficulty.HARD) is Difficulty.HARD

    def test_parse_rejects_unknown(self):
        with pytest.raises(InvalidArgumentError):
            Difficulty.parse("impossible")
