"""
Shared fixtures: in-memory database, seeded users and exam, a scripted
scoring client and an API client.
"""

import os

os.environ.setdefault("EXAMGRADER_JWT_SECRET", "test-secret-for-exam-grader-suite-0123456789")
os.environ.setdefault("EXAMGRADER_DATABASE_URL", "sqlite://")
os.environ.setdefault("EXAMGRADER_SCORING_BACKOFF_SECONDS", "0")
os.environ.setdefault("EXAMGRADER_GENERATE_AI_ANALYSIS", "false")

from typing import Dict, List, Optional, Union

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from examgrader.ai.base_provider import ScoringClient
from examgrader.api.app import create_app
from examgrader.api.auth import create_access_token
from examgrader.api.dependencies import limiter
from examgrader.config.settings import Settings
from examgrader.core.exceptions import ScoringUnavailableError
from examgrader.core.models import ExamStatus, ScoringRequest, ScoringResponse, UserRole
from examgrader.db import Base, get_db
from examgrader.db.models import (
    User, Classroom, ClassStudent, Exam, Question, ExamAssignment,
)
from examgrader.services.notifications import LoggingNotifier


Outcome = Union[ScoringResponse, Exception]


class FakeScoringClient(ScoringClient):
    """
    Scripted scoring client.

    `script` maps question text to outcomes consumed one per call; the last
    outcome repeats. Questions without a script get `default`.
    """

    def __init__(
        self,
        script: Optional[Dict[str, List[Outcome]]] = None,
        default: Outcome = None,
        analysis: Optional[str] = None
    ):
        super().__init__()
        self.script = {k: list(v) for k, v in (script or {}).items()}
        self.default = default or ScoringResponse(score=4, feedback="Good, minor omission")
        self.analysis = analysis
        self.requests: List[ScoringRequest] = []

    @property
    def name(self) -> str:
        return "fake"

    async def score(self, request: ScoringRequest) -> ScoringResponse:
        self.requests.append(request)
        outcomes = self.script.get(request.question)
        if outcomes:
            outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        else:
            outcome = self.default
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def analyze(self, prompt: str) -> str:
        if self.analysis is None:
            raise ScoringUnavailableError("analysis not scripted")
        return self.analysis


@pytest.fixture
def settings():
    return Settings(
        jwt_secret="test-secret-for-exam-grader-suite-0123456789",
        scoring_backoff_seconds=0,
        scoring_timeout_seconds=1.0,
        scoring_max_attempts=2,
        generate_ai_analysis=False,
    )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def people(db) -> Dict[str, User]:
    """Teacher, other teacher, parent, student (child of parent), other student, admin."""
    parent = User(email="parent@example.com", name="Pat Parent", role=UserRole.PARENT)
    db.add(parent)
    db.flush()

    users = {
        "teacher": User(email="teacher@example.com", name="Tess Teacher", role=UserRole.TEACHER),
        "other_teacher": User(email="other@example.com", name="Otto Teacher", role=UserRole.TEACHER),
        "parent": parent,
        "student": User(email="student@example.com", name="Sam Student", role=UserRole.STUDENT,
                        parent_id=parent.id),
        "other_student": User(email="student2@example.com", name="Alex Student", role=UserRole.STUDENT),
        "admin": User(email="admin@example.com", name="Ada Admin", role=UserRole.ADMIN),
    }
    db.add_all(users.values())
    db.commit()
    return users


@pytest.fixture
def exam(db, people) -> Exam:
    """One MULTIPLE_CHOICE (5 marks, key "B") and one SHORT_ANSWER (5 marks) question."""
    exam = Exam(
        title="Plant Biology",
        subject="Biology",
        grade_level="Grade 7",
        creator_id=people["teacher"].id,
        status=ExamStatus.ACTIVE,
        total_marks=10,
        duration_minutes=30,
    )
    exam.questions = [
        Question(position=1, question_text="Which organelle performs photosynthesis? A) Nucleus B) Chloroplast",
                 question_type="MULTIPLE_CHOICE", marks=5, correct_answer="B", options=["A", "B"]),
        Question(position=2, question_text="What process do plants use to make food?",
                 question_type="SHORT_ANSWER", marks=5, correct_answer="Photosynthesis", difficulty="easy"),
    ]
    db.add(exam)
    db.flush()
    db.add(ExamAssignment(exam_id=exam.id, student_id=people["student"].id, max_attempts=2))
    db.commit()
    return exam


@pytest.fixture
def classroom(db, people) -> Classroom:
    """Class of the other teacher containing the student."""
    classroom = Classroom(name="7B", teacher_id=people["other_teacher"].id)
    db.add(classroom)
    db.flush()
    db.add(ClassStudent(class_id=classroom.id, student_id=people["student"].id))
    db.commit()
    return classroom


@pytest.fixture
def scoring_client():
    return FakeScoringClient()


@pytest.fixture
def notifier():
    return LoggingNotifier()


@pytest.fixture
def api(session_factory, scoring_client, notifier):
    """TestClient with the database, scoring client and notifier injected."""
    app = create_app(scoring_client=scoring_client, notifier=notifier, initialize_database=False)

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    limiter.reset()
    with TestClient(app) as client:
        yield client


def auth(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}
