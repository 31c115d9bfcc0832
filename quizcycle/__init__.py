"""
quizcycle - adaptive interview-quiz engine.

Blends SM-2 spaced repetition, per-topic mastery gating and in-session
momentum into question selection for quiz sessions.
"""

__version__ = "1.0.0"
