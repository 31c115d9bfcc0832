"""Small numeric helpers shared by the trackers."""

from __future__ import annotations

import math
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp, the format stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def running_average(current: int, sample: int) -> int:
    """
    Two-point running average used for response times.

    The first sample is taken as-is; afterwards the stored value is halved
    toward each new sample, so recent answers dominate.
    """
    if current == 0:
        return sample
    return (current + sample) // 2


def percentage(part: int, whole: int) -> float:
    """Return part/whole as a percentage, 0 when whole is 0."""
    if whole <= 0:
        return 0.0
    return part / whole * 100.0


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positive values."""
    return int(math.floor(value + 0.5))
