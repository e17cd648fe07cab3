class QuizEngineError(Exception):
    """Base class for quiz engine failures that callers are expected to handle."""


class NotFoundError(QuizEngineError):
    """A daily quiz, session, question or verse does not exist."""


class InvalidStateError(QuizEngineError):
    """The operation is not allowed in the record's current status."""


class InvalidAnswerError(QuizEngineError, ValueError):
    """The submitted answer does not belong to the session's quiz."""


class InsufficientContentError(QuizEngineError):
    """Not enough approved questions exist to build a quiz."""


class ConstraintConflictError(QuizEngineError):
    """A unique constraint rejected a write; the winning row should be re-read."""


class GenerationError(QuizEngineError):
    """The content generation provider returned nothing usable."""
