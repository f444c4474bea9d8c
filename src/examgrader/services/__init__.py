"""Application services: submission intake, grade records, access rules, notifications."""

from examgrader.services.access import (
    can_review_attempt,
    can_view_attempt,
    find_active_assignment,
)
from examgrader.services.grade_service import GradeRecordManager, compute_statistics
from examgrader.services.notifications import (
    GradeNotifier,
    LoggingNotifier,
    WebhookNotifier,
    create_notifier,
)
from examgrader.services.submission_service import SubmissionService, index_answers

__all__ = [
    'can_review_attempt',
    'can_view_attempt',
    'find_active_assignment',
    'GradeRecordManager',
    'compute_statistics',
    'GradeNotifier',
    'LoggingNotifier',
    'WebhookNotifier',
    'create_notifier',
    'SubmissionService',
    'index_answers',
]
