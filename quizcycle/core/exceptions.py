"""
Error taxonomy for quiz operations.

NotFound, InvalidState and InvalidArgument are rejected operations the caller
can correct. DataIntegrity is a server-side fault. ExternalService failures
come from the LLM collaborator and are absorbed by the answer-validation path.
"""


class QuizError(Exception):
    """Base class for all quizcycle errors."""

    pass


class NotFoundError(QuizError):
    """Raised when a session, question or topic does not exist."""

    pass


class InvalidStateError(QuizError):
    """Raised when an operation is not allowed in the session's current state."""

    pass


class InvalidArgumentError(QuizError):
    """Raised when an answer or parameter is malformed."""

    pass


class DataIntegrityError(QuizError):
    """Raised when stored content violates an invariant (e.g. missing answer)."""

    pass


class ExternalServiceError(QuizError):
    """Raised when the LLM collaborator fails (timeout, status, bad payload)."""

    pass
