"""
Grade record manager.

Owns the Grade lifecycle:
- automated pass (status from review needs, never downgrading COMPLETED)
- lazy creation of a PENDING zero-score grade on first read
- manual override by an authorized reviewer, once the attempt is submitted
- the publish gate (one-way, idempotent, one notification)
- the role-aware read views
"""

from statistics import mean
from typing import Any, Dict, List, Optional, Sequence, Tuple

from loguru import logger
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from examgrader.config.constants import (
    PENDING_REVIEW_MESSAGE,
    TREND_THRESHOLD,
    TREND_WINDOW,
)
from examgrader.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from examgrader.core.models import (
    GradePublishedEvent,
    GradeStatus,
    QuestionResult,
    ScoreSummary,
    UserRole,
)
from examgrader.db.models import (
    Answer, Classroom, ClassStudent, Exam, ExamAttempt, Grade, User, utcnow,
)
from examgrader.grading.aggregator import ScoreAggregator
from examgrader.services.access import can_review_attempt, can_view_attempt
from examgrader.services.notifications import GradeNotifier, LoggingNotifier


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def compute_statistics(percentages: Sequence[int]) -> Dict[str, Any]:
    """
    Summary statistics over percentages ordered newest first.

    The trend compares the mean of the latest TREND_WINDOW results with the
    previous TREND_WINDOW; it stays "stable" until both windows are full.
    """
    stats = {
        "totalExams": len(percentages),
        "averageScore": 0.0,
        "highestScore": 0,
        "lowestScore": 0,
        "recentTrend": "stable",
    }
    if not percentages:
        return stats

    stats["averageScore"] = round(mean(percentages), 1)
    stats["highestScore"] = max(percentages)
    stats["lowestScore"] = min(percentages)

    if len(percentages) >= 2 * TREND_WINDOW:
        recent = mean(percentages[:TREND_WINDOW])
        previous = mean(percentages[TREND_WINDOW:2 * TREND_WINDOW])
        if recent > previous + TREND_THRESHOLD:
            stats["recentTrend"] = "up"
        elif recent < previous - TREND_THRESHOLD:
            stats["recentTrend"] = "down"
    return stats


class GradeRecordManager:
    """
    Creates and mutates Grade rows.

    The manager works inside the caller's session. Methods that form a
    complete user action (lazy creation, override, publish) commit; the
    automated pass only flushes so the submission can commit atomically.
    """

    def __init__(
        self,
        db: Session,
        notifier: Optional[GradeNotifier] = None,
        aggregator: Optional[ScoreAggregator] = None
    ):
        self.db = db
        self.notifier = notifier or LoggingNotifier()
        self.aggregator = aggregator or ScoreAggregator()

    # ==================== Lookup ====================

    def load_attempt(self, attempt_id: str) -> ExamAttempt:
        attempt = self.db.query(ExamAttempt).filter(ExamAttempt.id == attempt_id).first()
        if attempt is None:
            raise NotFoundError("Exam attempt not found", {'attempt_id': attempt_id})
        return attempt

    def _find_grade(self, attempt_id: str) -> Optional[Grade]:
        return self.db.query(Grade).filter(Grade.attempt_id == attempt_id).first()

    def get_or_create(self, attempt: ExamAttempt) -> Grade:
        """
        Return the attempt's grade, creating a PENDING zero-score one if absent.

        A concurrent reader may create the same row first; the unique
        attempt_id constraint resolves that and the existing row is returned.
        """
        grade = self._find_grade(attempt.id)
        if grade is not None:
            return grade

        grade = Grade(
            attempt_id=attempt.id,
            student_id=attempt.student_id,
            total_score=0.0,
            max_score=float(sum(q.marks for q in attempt.exam.questions)),
            percentage=0,
            status=GradeStatus.PENDING,
            is_published=False,
        )
        self.db.add(grade)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            grade = self._find_grade(attempt.id)
            if grade is None:
                raise
            return grade

        logger.info(f"Created pending grade for attempt {attempt.id}")
        return grade

    # ==================== Automated pass ====================

    def record_automated_pass(
        self,
        attempt: ExamAttempt,
        summary: ScoreSummary,
        results: Sequence[QuestionResult],
        overall_feedback: Optional[str] = None,
        ai_analysis: Optional[dict] = None
    ) -> Grade:
        """
        Store the aggregator's output for an attempt (flush only).

        Status is COMPLETED only when no answer needs review. A grade that is
        already COMPLETED stays COMPLETED.
        """
        needs_review = any(r.needs_review for r in results)
        grade = self._find_grade(attempt.id)
        if grade is None:
            grade = Grade(attempt_id=attempt.id, student_id=attempt.student_id, is_published=False)
            self.db.add(grade)

        grade.total_score = summary.total_score
        grade.max_score = summary.max_score
        grade.percentage = summary.percentage
        grade.grade = summary.letter
        grade.overall_feedback = overall_feedback
        grade.ai_analysis = ai_analysis
        grade.graded_at = utcnow()
        if grade.status != GradeStatus.COMPLETED:
            grade.status = GradeStatus.PENDING if needs_review else GradeStatus.COMPLETED

        self.db.flush()
        logger.info(
            f"Automated grade for attempt {attempt.id}: {summary.total_score:g}/{summary.max_score:g} "
            f"({summary.percentage}%, {summary.letter}), status={grade.status.value}"
        )
        return grade

    # ==================== Manual review ====================

    def _load_for_review(self, attempt_id: str, reviewer: User) -> ExamAttempt:
        attempt = self.load_attempt(attempt_id)
        if not can_review_attempt(self.db, reviewer, attempt):
            raise AuthorizationError(
                "Not allowed to review this attempt",
                {'attempt_id': attempt_id, 'user_id': reviewer.id}
            )
        if not attempt.is_completed:
            raise ValidationError(
                "Attempt has not been submitted yet",
                {'attempt_id': attempt_id}
            )
        return attempt

    def apply_manual_override(
        self,
        attempt_id: str,
        reviewer: User,
        total_score: float,
        status: Optional[str] = None,
        feedback: Optional[str] = None
    ) -> Grade:
        """
        Overwrite the total score of an attempt's grade.

        Args:
            attempt_id: Attempt being reviewed
            reviewer: TEACHER, PARENT or ADMIN with authority over the student
            total_score: New total, 0 <= total_score <= max score
            status: Optional explicit status; only COMPLETED is accepted
            feedback: Optional free-text overall feedback

        Returns:
            The updated Grade (COMPLETED)

        Raises:
            ValidationError: Attempt not yet submitted, score out of range or bad status
        """
        attempt = self._load_for_review(attempt_id, reviewer)

        if status is not None and status.upper() != GradeStatus.COMPLETED.value:
            raise ValidationError(
                "A reviewed grade can only be marked COMPLETED",
                {'status': status}
            )

        grade = self.get_or_create(attempt)
        max_score = float(sum(q.marks for q in attempt.exam.questions))
        summary = self.aggregator.override(total_score, max_score)

        grade.total_score = summary.total_score
        grade.max_score = summary.max_score
        grade.percentage = summary.percentage
        grade.grade = summary.letter
        grade.status = GradeStatus.COMPLETED
        grade.graded_at = utcnow()
        if feedback is not None:
            grade.overall_feedback = feedback

        self.db.commit()
        logger.info(
            f"Manual override on attempt {attempt_id} by {reviewer.id}: "
            f"{summary.total_score:g}/{summary.max_score:g} ({summary.percentage}%)"
        )
        return grade

    async def publish(self, attempt_id: str, reviewer: User) -> Tuple[Grade, bool]:
        """
        Make the grade visible to its student.

        Idempotent: only the call that flips is_published emits the
        notification; later calls return the grade unchanged.

        Returns:
            (grade, published_now)
        """
        attempt = self._load_for_review(attempt_id, reviewer)
        grade = self.get_or_create(attempt)

        published_at = utcnow()
        flipped = (
            self.db.query(Grade)
            .filter(Grade.id == grade.id, Grade.is_published == False)
            .update(
                {
                    Grade.is_published: True,
                    Grade.published_at: published_at,
                    Grade.published_by: reviewer.id,
                },
                synchronize_session=False,
            )
        )
        self.db.commit()
        self.db.refresh(grade)

        if not flipped:
            logger.info(f"Grade for attempt {attempt_id} already published, nothing to do")
            return grade, False

        logger.info(f"Published grade for attempt {attempt_id} by {reviewer.id}")
        await self.notifier.notify(GradePublishedEvent(
            student_id=grade.student_id,
            attempt_id=attempt.id,
            exam_id=attempt.exam_id,
            percentage=grade.percentage,
            published_at=grade.published_at,
        ))
        return grade, True

    # ==================== Read views ====================

    def result_view(self, attempt_id: str, viewer: User) -> Dict[str, Any]:
        """
        Grade of an attempt as `viewer` may see it.

        Students see only a pending-review notice until the grade is published.
        """
        attempt = self.load_attempt(attempt_id)
        if not can_view_attempt(self.db, viewer, attempt):
            raise AuthorizationError(
                "Not allowed to view this attempt",
                {'attempt_id': attempt_id, 'user_id': viewer.id}
            )

        grade = self.get_or_create(attempt)
        if viewer.role == UserRole.STUDENT and not grade.is_published:
            return {
                "attemptId": attempt.id,
                "examId": attempt.exam_id,
                "status": "pending_review",
                "isPublished": False,
                "message": PENDING_REVIEW_MESSAGE,
            }
        return self._full_view(attempt, grade)

    def _full_view(self, attempt: ExamAttempt, grade: Grade) -> Dict[str, Any]:
        exam = attempt.exam
        questions = list(exam.questions)
        answers_by_question = {a.question_id: a for a in attempt.answers}

        answers = []
        for question in questions:
            answer: Optional[Answer] = answers_by_question.get(question.id)
            if answer is None:
                continue
            answers.append({
                "questionId": question.id,
                "answer": answer.answer,
                "strategy": answer.strategy,
                "aiScore": answer.ai_score,
                "aiFeedback": answer.ai_feedback,
                "finalScore": answer.final_score,
                "isCorrect": not answer.needs_review and answer.final_score >= question.marks,
                "needsReview": answer.needs_review,
            })

        student = attempt.student
        return {
            "id": grade.id,
            "attemptId": attempt.id,
            "examId": exam.id,
            "exam": {
                "id": exam.id,
                "title": exam.title,
                "description": exam.description,
                "subject": exam.subject,
                "gradeLevel": exam.grade_level,
                "totalMarks": exam.total_marks,
                "duration": exam.duration_minutes,
            },
            "student": {"id": student.id, "name": student.name, "email": student.email},
            "attempt": {
                "startedAt": _iso(attempt.started_at),
                "submittedAt": _iso(attempt.submitted_at),
                "timeSpent": attempt.time_spent,
                "isCompleted": attempt.is_completed,
            },
            "questions": [
                {
                    "id": q.id,
                    "position": q.position,
                    "question": q.question_text,
                    "type": q.question_type,
                    "marks": q.marks,
                    "options": q.options,
                    "correctAnswer": q.correct_answer,
                }
                for q in questions
            ],
            "answers": answers,
            "totalScore": grade.total_score,
            "maxScore": grade.max_score,
            "percentage": grade.percentage,
            "grade": grade.grade,
            "status": grade.status.value,
            "isPublished": grade.is_published,
            "publishedAt": _iso(grade.published_at),
            "overallFeedback": grade.overall_feedback,
            "aiAnalysis": grade.ai_analysis,
            "gradedAt": _iso(grade.graded_at),
        }

    def list_results(self, viewer: User) -> Dict[str, Any]:
        """Role-scoped grades, newest first, with summary statistics."""
        query = (
            self.db.query(Grade)
            .join(ExamAttempt, ExamAttempt.id == Grade.attempt_id)
            .join(Exam, Exam.id == ExamAttempt.exam_id)
        )

        if viewer.role == UserRole.STUDENT:
            query = query.filter(Grade.student_id == viewer.id, Grade.is_published.is_(True))
        elif viewer.role == UserRole.PARENT:
            children = select(User.id).where(User.parent_id == viewer.id)
            query = query.filter(Grade.student_id.in_(children), Grade.is_published.is_(True))
        elif viewer.role == UserRole.TEACHER:
            taught = (
                select(ClassStudent.student_id)
                .join(Classroom, Classroom.id == ClassStudent.class_id)
                .where(Classroom.teacher_id == viewer.id)
            )
            query = query.filter(or_(Exam.creator_id == viewer.id, Grade.student_id.in_(taught)))

        grades: List[Grade] = query.order_by(Grade.created_at.desc(), Grade.id).all()

        results = []
        for grade in grades:
            attempt = grade.attempt
            results.append({
                "id": grade.id,
                "attemptId": grade.attempt_id,
                "exam": {
                    "id": attempt.exam.id,
                    "title": attempt.exam.title,
                    "subject": attempt.exam.subject,
                    "gradeLevel": attempt.exam.grade_level,
                    "totalMarks": attempt.exam.total_marks,
                },
                "student": {"id": grade.student.id, "name": grade.student.name},
                "attempt": {
                    "submittedAt": _iso(attempt.submitted_at),
                    "timeSpent": attempt.time_spent,
                },
                "totalScore": grade.total_score,
                "percentage": grade.percentage,
                "grade": grade.grade,
                "status": grade.status.value,
                "gradedAt": _iso(grade.graded_at),
                "isPublished": grade.is_published,
                "publishedAt": _iso(grade.published_at),
            })

        return {
            "results": results,
            "statistics": compute_statistics([g.percentage for g in grades]),
        }
