"""Review scheduling and live-session telemetry."""

from .scheduler import SM2Config, SpacedRepetitionScheduler
from .telemetry import MomentumConfig, SessionMomentum, SessionMomentumTracker

__all__ = [
    "SM2Config",
    "SpacedRepetitionScheduler",
    "MomentumConfig",
    "SessionMomentum",
    "SessionMomentumTracker",
]
