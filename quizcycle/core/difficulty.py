"""
Ordered difficulty levels.

EASY < MEDIUM < HARD. Successor/predecessor return None at the ends;
step_up/step_down clamp instead.
"""

from __future__ import annotations

from enum import Enum

from .exceptions import InvalidArgumentError


class Difficulty(str, Enum):
    """Question difficulty, ordered from easiest to hardest."""

    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"

    @classmethod
    def ordered(cls) -> list[Difficulty]:
        return [cls.EASY, cls.MEDIUM, cls.HARD]

    @classmethod
    def parse(cls, value: str | Difficulty) -> Difficulty:
        """Parse a difficulty name case-insensitively."""
        if isinstance(value, Difficulty):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise InvalidArgumentError(f"Unknown difficulty: {value!r}") from None

    @property
    def rank(self) -> int:
        return Difficulty.ordered().index(self)

    def successor(self) -> Difficulty | None:
        levels = Difficulty.ordered()
        return levels[self.rank + 1] if self.rank + 1 < len(levels) else None

    def predecessor(self) -> Difficulty | None:
        return Difficulty.ordered()[self.rank - 1] if self.rank > 0 else None

    def step_up(self) -> Difficulty:
        return self.successor() or self

    def step_down(self) -> Difficulty:
        return self.predecessor() or self

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Difficulty):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Difficulty):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Difficulty):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Difficulty):
            return NotImplemented
        return self.rank >= other.rank
