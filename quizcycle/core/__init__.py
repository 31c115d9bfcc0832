"""Core primitives shared across quizcycle components."""

from .difficulty import Difficulty
from .exceptions import (
    DataIntegrityError,
    ExternalServiceError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
    QuizError,
)

__all__ = [
    "Difficulty",
    "QuizError",
    "NotFoundError",
    "InvalidStateError",
    "InvalidArgumentError",
    "DataIntegrityError",
    "ExternalServiceError",
]
