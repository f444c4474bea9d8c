"""
Authorization rules over students, exams and attempts.

Authentication is handled upstream; these helpers only decide whether an
already identified user may see or review a given student's work.
"""

from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from examgrader.core.models import UserRole
from examgrader.db.models import (
    User, Classroom, ClassStudent, Exam, ExamAssignment, ExamAttempt,
)

REVIEWER_ROLES = (UserRole.TEACHER, UserRole.PARENT, UserRole.ADMIN)


def teaches_student(db: Session, teacher_id: str, student_id: str) -> bool:
    """True if the student belongs to one of the teacher's classes."""
    membership = (
        db.query(ClassStudent.id)
        .join(Classroom, Classroom.id == ClassStudent.class_id)
        .filter(Classroom.teacher_id == teacher_id, ClassStudent.student_id == student_id)
        .first()
    )
    return membership is not None


def is_parent_of(db: Session, parent_id: str, student_id: str) -> bool:
    student = db.query(User).filter(User.id == student_id).first()
    return student is not None and student.parent_id == parent_id


def _has_authority(db: Session, user: User, exam: Exam, student_id: str) -> bool:
    """Authority of a non-student user over one student's attempt."""
    if user.role == UserRole.ADMIN:
        return True
    if user.role == UserRole.TEACHER:
        return exam.creator_id == user.id or teaches_student(db, user.id, student_id)
    if user.role == UserRole.PARENT:
        return exam.creator_id == user.id or is_parent_of(db, user.id, student_id)
    return False


def can_view_attempt(db: Session, user: User, attempt: ExamAttempt) -> bool:
    """
    Whether `user` may read the grade of `attempt`.

    Allowed: the student who owns it, an admin, the exam's creator, a teacher
    of one of the student's classes, or the student's parent.
    """
    if user.role == UserRole.STUDENT:
        return attempt.student_id == user.id
    return _has_authority(db, user, attempt.exam, attempt.student_id)


def can_review_attempt(db: Session, user: User, attempt: ExamAttempt) -> bool:
    """Whether `user` may override or publish the grade of `attempt`."""
    if user.role not in REVIEWER_ROLES:
        return False
    return _has_authority(db, user, attempt.exam, attempt.student_id)


def find_active_assignment(db: Session, exam_id: str, student_id: str) -> Optional[ExamAssignment]:
    """
    Active assignment of an exam to a student, directly or through a class.

    Returns:
        The first matching ExamAssignment, or None
    """
    class_ids = select(ClassStudent.class_id).where(ClassStudent.student_id == student_id)
    return (
        db.query(ExamAssignment)
        .filter(
            ExamAssignment.exam_id == exam_id,
            ExamAssignment.is_active.is_(True),
            or_(
                ExamAssignment.student_id == student_id,
                ExamAssignment.class_id.in_(class_ids),
            ),
        )
        .order_by(ExamAssignment.created_at)
        .first()
    )
