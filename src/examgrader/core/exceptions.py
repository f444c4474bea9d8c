"""
Custom exception hierarchy for the exam grading service.

Structural errors (validation, authorization, not-found, already-submitted)
abort a request. External scoring errors are always recovered inside the
assisted grader and never reach the submitter.
"""


class ExamGraderError(Exception):
    """
    Base exception for all exam grading errors.

    All custom exceptions should inherit from this class.
    """

    def __init__(self, message: str, details: dict | None = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error context
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# ==================== Request Errors ====================

class ValidationError(ExamGraderError):
    """Raised when a request payload is malformed or inconsistent."""
    pass


class AuthorizationError(ExamGraderError):
    """Raised when the caller's role or ownership does not permit the action."""
    pass


class NotAssignedError(AuthorizationError):
    """Raised when a student has no active assignment for the exam."""
    pass


class NotFoundError(ExamGraderError):
    """Raised when an exam, attempt or question does not exist."""
    pass


class AlreadySubmittedError(ExamGraderError):
    """Raised when an attempt has already been submitted."""

    def __init__(self, attempt_id: str):
        super().__init__("Exam already submitted", {'attempt_id': attempt_id})
        self.attempt_id = attempt_id


# ==================== Configuration Errors ====================

class ConfigurationError(ExamGraderError):
    """
    Error in system configuration.

    Raised when required configuration is missing or invalid, including
    exams whose questions carry no marks.
    """
    pass


# ==================== External Scoring Errors ====================

class ExternalServiceError(ExamGraderError):
    """
    Base error for the external scoring service.

    Always recovered locally by the assisted grader.
    """
    pass


class ScoringUnavailableError(ExternalServiceError):
    """Raised when no scoring service is configured or it refuses the request."""
    pass


class ScoringTransportError(ExternalServiceError):
    """Raised on connection failures, rate limiting or 5xx responses (retryable)."""
    pass


class ScoringTimeoutError(ScoringTransportError):
    """Raised when a scoring call exceeds its time bound (retryable)."""
    pass


class ScoringResponseError(ExternalServiceError):
    """Raised when the scoring service returns a malformed response."""
    pass
