"""Exam-taking API endpoints: start an attempt and submit it."""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from examgrader.ai.base_provider import ScoringClient
from examgrader.api.auth import require_roles
from examgrader.api.dependencies import get_scoring_client, limiter
from examgrader.api.schemas import (
    AttemptQuestion,
    PreliminaryScore,
    StartAttemptResponse,
    SubmitExamRequest,
    SubmitExamResponse,
)
from examgrader.config.settings import get_settings
from examgrader.core.models import UserRole
from examgrader.db import get_db, User
from examgrader.services.submission_service import SubmissionService

router = APIRouter(prefix="/exams", tags=["exams"])

require_student = require_roles(UserRole.STUDENT)


def _submit_rate_limit() -> str:
    return get_settings().submit_rate_limit


@router.post(
    "/{exam_id}/attempts",
    response_model=StartAttemptResponse,
    status_code=status.HTTP_201_CREATED,
)
async def start_attempt(
    exam_id: str,
    current_user: User = Depends(require_student),
    db: Session = Depends(get_db),
    scoring_client: ScoringClient = Depends(get_scoring_client)
):
    """Start a new attempt on an assigned exam."""
    service = SubmissionService(db, scoring_client)
    attempt = service.start_attempt(exam_id, current_user)
    exam = attempt.exam

    return StartAttemptResponse(
        id=attempt.id,
        exam_id=exam.id,
        student_id=attempt.student_id,
        started_at=attempt.started_at,
        is_completed=attempt.is_completed,
        duration_minutes=exam.duration_minutes,
        questions=[
            AttemptQuestion(
                id=q.id,
                position=q.position,
                question=q.question_text,
                type=q.question_type,
                marks=q.marks,
                options=q.options,
            )
            for q in exam.questions
        ],
    )


@router.post("/{exam_id}/submit", response_model=SubmitExamResponse)
@limiter.limit(_submit_rate_limit)
async def submit_exam(
    request: Request,
    exam_id: str,
    body: SubmitExamRequest,
    current_user: User = Depends(require_student),
    db: Session = Depends(get_db),
    scoring_client: ScoringClient = Depends(get_scoring_client)
):
    """
    Submit answers for grading.

    Returns the preliminary score; questions awaiting manual review count 0.
    """
    service = SubmissionService(db, scoring_client)
    result = await service.submit(
        exam_id=exam_id,
        student=current_user,
        answers=[(item.question_id, item.answer) for item in body.answers],
        attempt_id=body.attempt_id,
    )

    return SubmitExamResponse(
        attempt_id=result.attempt_id,
        preliminary_score=PreliminaryScore(
            score=result.summary.total_score,
            max_score=result.summary.max_score,
            percentage=result.summary.percentage,
        ),
    )
