"""Database models for the exam grading service."""

from datetime import datetime, timezone
from sqlalchemy import (
    Column, String, Text, DateTime, Integer, Float, Boolean, JSON, ForeignKey,
    Enum as SQLEnum, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from examgrader.db.database import Base
from examgrader.core.models import (
    UserRole, ExamStatus, GradeStatus, GradableQuestion, generate_id,
)


def utcnow() -> datetime:
    """Naive UTC timestamp, the convention for every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    """Platform user. Students may be linked to a parent account."""
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=generate_id)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=True)
    role = Column(SQLEnum(UserRole), nullable=False, default=UserRole.STUDENT)
    parent_id = Column(String, ForeignKey("users.id"), nullable=True, index=True)
    created_at = Column(DateTime, default=utcnow)

    parent = relationship("User", remote_side=[id], backref="children")


class Classroom(Base):
    """A teacher's class; exams can be assigned to a whole class."""
    __tablename__ = "classrooms"

    id = Column(String, primary_key=True, default=generate_id)
    name = Column(String, nullable=False)
    teacher_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow)

    teacher = relationship("User")
    members = relationship("ClassStudent", back_populates="classroom", cascade="all, delete-orphan")


class ClassStudent(Base):
    """Membership of a student in a class."""
    __tablename__ = "class_students"

    id = Column(String, primary_key=True, default=generate_id)
    class_id = Column(String, ForeignKey("classrooms.id"), nullable=False, index=True)
    student_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)

    classroom = relationship("Classroom", back_populates="members")

    __table_args__ = (
        UniqueConstraint('class_id', 'student_id', name='uq_class_student'),
    )


class Exam(Base):
    """An exam with its ordered questions."""
    __tablename__ = "exams"

    id = Column(String, primary_key=True, default=generate_id)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    subject = Column(String, nullable=True)
    grade_level = Column(String, nullable=True)
    creator_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(SQLEnum(ExamStatus), nullable=False, default=ExamStatus.DRAFT)
    total_marks = Column(Integer, nullable=False, default=0)
    duration_minutes = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    creator = relationship("User")
    questions = relationship(
        "Question",
        back_populates="exam",
        order_by="Question.position",
        cascade="all, delete-orphan",
    )


class Question(Base):
    """
    A question belonging to exactly one exam.

    `correct_answer` is stored as JSON: a string for choice questions, a list
    of strings for multi-select, free-form reference text otherwise.
    """
    __tablename__ = "questions"

    id = Column(String, primary_key=True, default=generate_id)
    exam_id = Column(String, ForeignKey("exams.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    question_text = Column(Text, nullable=False)
    question_type = Column("type", String(32), nullable=False)
    marks = Column(Integer, nullable=False, default=1)
    correct_answer = Column(JSON, nullable=True)
    options = Column(JSON, nullable=True)
    difficulty = Column(String, nullable=True)

    exam = relationship("Exam", back_populates="questions")

    def to_gradable(self) -> GradableQuestion:
        return GradableQuestion(
            id=self.id,
            position=self.position,
            text=self.question_text,
            question_type=self.question_type,
            marks=self.marks,
            correct_answer=self.correct_answer,
            difficulty=self.difficulty,
        )


class ExamAssignment(Base):
    """Assignment of an exam to a student directly or to a class."""
    __tablename__ = "exam_assignments"

    id = Column(String, primary_key=True, default=generate_id)
    exam_id = Column(String, ForeignKey("exams.id"), nullable=False, index=True)
    student_id = Column(String, ForeignKey("users.id"), nullable=True, index=True)
    class_id = Column(String, ForeignKey("classrooms.id"), nullable=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    max_attempts = Column(Integer, nullable=False, default=1)
    start_date = Column(DateTime, nullable=True)
    due_date = Column(DateTime, nullable=True)
    allow_late_submission = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)


class ExamAttempt(Base):
    """
    One student's run at an exam.

    `is_completed` only moves False -> True, through a conditional UPDATE.
    """
    __tablename__ = "exam_attempts"

    id = Column(String, primary_key=True, default=generate_id)
    exam_id = Column(String, ForeignKey("exams.id"), nullable=False, index=True)
    student_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    started_at = Column(DateTime, nullable=False, default=utcnow)
    submitted_at = Column(DateTime, nullable=True)
    is_completed = Column(Boolean, nullable=False, default=False)
    time_spent = Column(Integer, nullable=True)  # minutes

    exam = relationship("Exam")
    student = relationship("User")
    answers = relationship("Answer", back_populates="attempt", cascade="all, delete-orphan")
    grade = relationship("Grade", back_populates="attempt", uselist=False)


class Answer(Base):
    """A student's answer to one question, written once during grading."""
    __tablename__ = "answers"

    id = Column(String, primary_key=True, default=generate_id)
    attempt_id = Column(String, ForeignKey("exam_attempts.id"), nullable=False, index=True)
    question_id = Column(String, ForeignKey("questions.id"), nullable=False, index=True)
    answer = Column(JSON, nullable=True)
    ai_score = Column(Float, nullable=True)
    ai_feedback = Column(Text, nullable=True)
    final_score = Column(Float, nullable=False, default=0.0)
    strategy = Column(String(16), nullable=False)
    needs_review = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)

    attempt = relationship("ExamAttempt", back_populates="answers")
    question = relationship("Question")

    __table_args__ = (
        UniqueConstraint('attempt_id', 'question_id', name='uq_answer_attempt_question'),
    )


class Grade(Base):
    """Durable, reviewable grade of an attempt (one per attempt)."""
    __tablename__ = "grades"

    id = Column(String, primary_key=True, default=generate_id)
    attempt_id = Column(String, ForeignKey("exam_attempts.id"), nullable=False, unique=True, index=True)
    student_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    total_score = Column(Float, nullable=False, default=0.0)
    max_score = Column(Float, nullable=False, default=0.0)
    percentage = Column(Integer, nullable=False, default=0)
    grade = Column(String(2), nullable=True)
    status = Column(SQLEnum(GradeStatus), nullable=False, default=GradeStatus.PENDING)
    is_published = Column(Boolean, nullable=False, default=False)
    published_at = Column(DateTime, nullable=True)
    published_by = Column(String, ForeignKey("users.id"), nullable=True)
    overall_feedback = Column(Text, nullable=True)
    ai_analysis = Column(JSON, nullable=True)
    graded_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    attempt = relationship("ExamAttempt", back_populates="grade")
    student = relationship("User", foreign_keys=[student_id])
