"""
Core data models for the exam grading pipeline.

This module defines the Pydantic models passed between the graders, the
aggregator and the grade record manager. Persistence models live in db.models.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import List, Optional, Any, Union
from datetime import datetime
from enum import Enum
import math
import uuid


class QuestionType(str, Enum):
    """Question types known to the grading pipeline."""
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    TRUE_FALSE = "TRUE_FALSE"
    SHORT_ANSWER = "SHORT_ANSWER"
    LONG_ANSWER = "LONG_ANSWER"
    FILL_BLANKS = "FILL_BLANKS"
    MATCHING = "MATCHING"


class GradingStrategy(str, Enum):
    """How a question is scored."""
    OBJECTIVE = "OBJECTIVE"       # Deterministic exact match
    ASSISTED = "ASSISTED"         # External scoring service with fallback
    MANUAL_ONLY = "MANUAL_ONLY"   # Always left for a human


class UserRole(str, Enum):
    """Roles of platform users."""
    STUDENT = "STUDENT"
    TEACHER = "TEACHER"
    PARENT = "PARENT"
    ADMIN = "ADMIN"


class GradeStatus(str, Enum):
    """Review status of a grade. Only ever moves PENDING -> COMPLETED."""
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"


class ExamStatus(str, Enum):
    """Authoring status of an exam."""
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"


class AnswerOutcome(str, Enum):
    """Coarse classification of a graded answer, used for summaries."""
    CORRECT = "correct"
    PARTIAL = "partial"
    INCORRECT = "incorrect"
    PENDING = "pending"


# A student's raw answer: scalar text, a list of selected options, or nothing.
AnswerPayload = Union[str, List[str], None]


def generate_id() -> str:
    """Generate a unique ID."""
    return str(uuid.uuid4())


def is_blank(answer: AnswerPayload) -> bool:
    """True when the student left the question unanswered."""
    if answer is None:
        return True
    if isinstance(answer, str):
        return not answer.strip()
    return len(answer) == 0


class GradableQuestion(BaseModel):
    """
    A question as seen by the graders.

    `question_type` keeps the raw stored string so that unknown types still
    reach the strategy table (which routes them to manual review).
    """
    model_config = ConfigDict(frozen=True)

    id: str
    position: int = 0
    text: str
    question_type: str
    marks: int = Field(gt=0)
    correct_answer: Any = None
    difficulty: Optional[str] = None


class QuestionResult(BaseModel):
    """Outcome of grading a single question."""
    question_id: str
    strategy: GradingStrategy
    marks: int
    score: float = 0.0
    feedback: str
    ai_score: Optional[float] = None
    needs_review: bool = False

    @property
    def outcome(self) -> AnswerOutcome:
        if self.needs_review:
            return AnswerOutcome.PENDING
        if self.score >= self.marks:
            return AnswerOutcome.CORRECT
        if self.score > 0:
            return AnswerOutcome.PARTIAL
        return AnswerOutcome.INCORRECT


class ScoringRequest(BaseModel):
    """Request sent to the external scoring service (fixed contract)."""
    question: str
    reference_answer: Any = None
    student_answer: Any
    max_marks: int
    context: Optional[dict] = None

    def to_wire(self) -> dict:
        """Serialize with the camelCase keys of the scoring contract."""
        payload = {
            "question": self.question,
            "referenceAnswer": self.reference_answer,
            "studentAnswer": self.student_answer,
            "maxMarks": self.max_marks,
        }
        if self.context:
            payload["context"] = self.context
        return payload


class ScoringResponse(BaseModel):
    """Response expected from the external scoring service."""
    model_config = ConfigDict(strict=True)

    score: Union[int, float]
    feedback: str

    @field_validator('score')
    @classmethod
    def score_must_be_finite(cls, v: Union[int, float]) -> float:
        if isinstance(v, bool) or not math.isfinite(v):
            raise ValueError("score must be a finite number")
        return float(v)


class ScoreSummary(BaseModel):
    """Aggregated score of an attempt."""
    total_score: float
    max_score: float
    percentage: int
    letter: str


class SubmissionResult(BaseModel):
    """What Submission Intake hands back to the API layer."""
    attempt_id: str
    summary: ScoreSummary
    results: List[QuestionResult]
    status: GradeStatus


class GradePublishedEvent(BaseModel):
    """Emitted once when a grade becomes visible to its student."""
    student_id: str
    attempt_id: str
    exam_id: str
    percentage: int
    published_at: datetime
