"""
Pydantic schemas for API request/response validation.

Bodies use camelCase on the wire; fields are snake_case in Python.
"""

from datetime import datetime
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Submission Schemas
# ============================================================================

class SubmittedAnswer(CamelModel):
    """One answer in a submission."""
    question_id: str = Field(min_length=1)
    answer: Union[str, List[str], None] = None


class SubmitExamRequest(CamelModel):
    """Body of POST /api/exams/{exam_id}/submit."""
    attempt_id: Optional[str] = None
    answers: List[SubmittedAnswer]


class PreliminaryScore(CamelModel):
    score: float
    max_score: float
    percentage: int


class SubmitExamResponse(CamelModel):
    attempt_id: str
    message: str = "Exam submitted successfully"
    preliminary_score: PreliminaryScore


# ============================================================================
# Attempt Schemas
# ============================================================================

class AttemptQuestion(CamelModel):
    """Question as shown to a student taking the exam (no correct answer)."""
    id: str
    position: int
    question: str
    type: str
    marks: int
    options: Optional[Any] = None


class StartAttemptResponse(CamelModel):
    id: str
    exam_id: str
    student_id: str
    started_at: datetime
    is_completed: bool
    duration_minutes: Optional[int] = None
    questions: List[AttemptQuestion]


# ============================================================================
# Review Schemas
# ============================================================================

class ManualGradeRequest(CamelModel):
    """Body of POST /api/results/{attempt_id}/grade."""
    total_score: float
    status: Optional[str] = None
    feedback: Optional[str] = None


class GradeResponse(CamelModel):
    id: str
    attempt_id: str
    student_id: str
    total_score: float
    max_score: float
    percentage: int
    grade: Optional[str] = None
    status: str
    is_published: bool
    published_at: Optional[datetime] = None
    overall_feedback: Optional[str] = None
    message: Optional[str] = None
