"""
Core module for the exam grading service.

Exports key models and exceptions for easy access.
"""

from examgrader.core.models import (
    QuestionType,
    GradingStrategy,
    UserRole,
    GradeStatus,
    ExamStatus,
    AnswerOutcome,
    AnswerPayload,
    GradableQuestion,
    QuestionResult,
    ScoringRequest,
    ScoringResponse,
    ScoreSummary,
    SubmissionResult,
    GradePublishedEvent,
    generate_id,
    is_blank,
)

from examgrader.core.exceptions import (
    ExamGraderError,
    ValidationError,
    AuthorizationError,
    NotAssignedError,
    NotFoundError,
    AlreadySubmittedError,
    ConfigurationError,
    ExternalServiceError,
    ScoringUnavailableError,
    ScoringTransportError,
    ScoringTimeoutError,
    ScoringResponseError,
)

__all__ = [
    # Models
    'QuestionType',
    'GradingStrategy',
    'UserRole',
    'GradeStatus',
    'ExamStatus',
    'AnswerOutcome',
    'AnswerPayload',
    'GradableQuestion',
    'QuestionResult',
    'ScoringRequest',
    'ScoringResponse',
    'ScoreSummary',
    'SubmissionResult',
    'GradePublishedEvent',
    'generate_id',
    'is_blank',
    # Exceptions
    'ExamGraderError',
    'ValidationError',
    'AuthorizationError',
    'NotAssignedError',
    'NotFoundError',
    'AlreadySubmittedError',
    'ConfigurationError',
    'ExternalServiceError',
    'ScoringUnavailableError',
    'ScoringTransportError',
    'ScoringTimeoutError',
    'ScoringResponseError',
]
