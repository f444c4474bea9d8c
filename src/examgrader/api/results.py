"""Results API endpoints: listing, fetching, manual grading and publishing."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from examgrader.api.auth import get_current_user, require_roles
from examgrader.api.dependencies import get_notifier
from examgrader.api.schemas import GradeResponse, ManualGradeRequest
from examgrader.core.models import UserRole
from examgrader.db import get_db, Grade, User
from examgrader.services.grade_service import GradeRecordManager
from examgrader.services.notifications import GradeNotifier

router = APIRouter(prefix="/results", tags=["results"])

require_reviewer = require_roles(UserRole.TEACHER, UserRole.PARENT, UserRole.ADMIN)


def _grade_response(grade: Grade, message: str) -> GradeResponse:
    return GradeResponse(
        id=grade.id,
        attempt_id=grade.attempt_id,
        student_id=grade.student_id,
        total_score=grade.total_score,
        max_score=grade.max_score,
        percentage=grade.percentage,
        grade=grade.grade,
        status=grade.status.value,
        is_published=grade.is_published,
        published_at=grade.published_at,
        overall_feedback=grade.overall_feedback,
        message=message,
    )


@router.get("")
async def list_results(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List grades visible to the caller with summary statistics."""
    return GradeRecordManager(db).list_results(current_user)


@router.get("/{attempt_id}")
async def get_result(
    attempt_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Fetch the grade of an attempt, creating a pending one if none exists yet.

    Students only see a pending-review notice until the grade is published.
    """
    return GradeRecordManager(db).result_view(attempt_id, current_user)


@router.post("/{attempt_id}/grade", response_model=GradeResponse)
async def grade_attempt(
    attempt_id: str,
    body: ManualGradeRequest,
    current_user: User = Depends(require_reviewer),
    db: Session = Depends(get_db),
    notifier: GradeNotifier = Depends(get_notifier)
):
    """Apply a manual grade and publish it to the student."""
    manager = GradeRecordManager(db, notifier=notifier)
    manager.apply_manual_override(
        attempt_id,
        current_user,
        total_score=body.total_score,
        status=body.status,
        feedback=body.feedback,
    )
    grade, _ = await manager.publish(attempt_id, current_user)
    return _grade_response(grade, "Exam graded successfully")


@router.post("/{attempt_id}/publish", response_model=GradeResponse)
async def publish_result(
    attempt_id: str,
    current_user: User = Depends(require_reviewer),
    db: Session = Depends(get_db),
    notifier: GradeNotifier = Depends(get_notifier)
):
    """Publish the current grade as is. Publishing twice is a no-op."""
    manager = GradeRecordManager(db, notifier=notifier)
    grade, published_now = await manager.publish(attempt_id, current_user)
    message = "Grade published" if published_now else "Grade already published"
    return _grade_response(grade, message)
