"""Database module for the exam grading service."""

from examgrader.db.database import Base, engine, SessionLocal, build_engine, get_db, init_db
from examgrader.db.models import (
    User, Classroom, ClassStudent, Exam, Question, ExamAssignment,
    ExamAttempt, Answer, Grade, utcnow,
)

__all__ = [
    "Base",
    "engine",
    "SessionLocal",
    "build_engine",
    "get_db",
    "init_db",
    "User",
    "Classroom",
    "ClassStudent",
    "Exam",
    "Question",
    "ExamAssignment",
    "ExamAttempt",
    "Answer",
    "Grade",
    "utcnow",
]
