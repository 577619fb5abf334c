# Error Taxonomy
"""
Exceptions raised by the interview preparation core.

Each error carries a stable ``code`` that the HTTP layer returns as the
reason for a rejected operation. AI-layer errors (provider and parse
errors) are absorbed by the generator and evaluator; the rest surface to
the caller.
"""

from typing import Optional


class InterviewPrepError(Exception):
    """Base class for all core errors."""

    code = "InterviewPrepError"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


# ============================================================================
# Caller Errors
# ============================================================================

class ValidationError(InterviewPrepError):
    """Invalid or incomplete input supplied by the caller."""

    code = "ValidationError"


class NotFoundError(InterviewPrepError):
    code = "NotFound"


class SessionNotFound(NotFoundError):
    code = "SessionNotFound"


class QuestionNotFound(NotFoundError):
    code = "QuestionNotFound"


class InvalidStateTransition(InterviewPrepError):
    """Operation not allowed in the session's current state."""

    code = "InvalidStateTransition"


class PersistenceError(InterviewPrepError):
    """Database operation failed. Not retried at this layer."""

    code = "PersistenceError"


# ============================================================================
# AI Layer Errors
# ============================================================================

class ProviderError(InterviewPrepError):
    code = "ProviderError"


class ProviderUnavailable(ProviderError):
    """The gateway exhausted its retry budget."""

    code = "ProviderUnavailable"


class ProviderRequestError(ProviderError):
    """The provider rejected the request (client error, not retried)."""

    code = "ProviderRequestError"


class OutputParseError(InterviewPrepError):
    code = "OutputParseError"


class GenerationParseError(OutputParseError):
    code = "GenerationParseError"


class EvaluationParseError(OutputParseError):
    code = "EvaluationParseError"
