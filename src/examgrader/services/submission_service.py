"""
Submission intake.

Validates a submission, resolves or creates the attempt, claims it with a
conditional update on is_completed, grades every question (assisted calls
fan out in parallel), writes one Answer per question in exam order and
records the grade.

The claim commits on its own before any await, so no write transaction is
held while waiting on the scoring service. Answers and the grade are then
written and committed together once grading has finished. If that phase
fails the claim is released and nothing else is kept.
"""

import asyncio
from typing import Awaitable, Dict, List, Optional, Sequence, Tuple

from loguru import logger
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from examgrader.ai.base_provider import ScoringClient
from examgrader.config.constants import FEEDBACK_NO_ANSWER, FEEDBACK_PENDING_REVIEW
from examgrader.config.settings import Settings, get_settings
from examgrader.core.exceptions import (
    AlreadySubmittedError,
    AuthorizationError,
    ConfigurationError,
    NotAssignedError,
    NotFoundError,
    ValidationError,
)
from examgrader.core.models import (
    AnswerPayload,
    GradableQuestion,
    GradingStrategy,
    QuestionResult,
    SubmissionResult,
    UserRole,
    is_blank,
)
from examgrader.db.models import Answer, Exam, ExamAttempt, User, utcnow
from examgrader.grading.aggregator import ScoreAggregator
from examgrader.grading.assisted import AssistedGrader, RetryPolicy
from examgrader.grading.feedback import build_overall_feedback, generate_ai_analysis
from examgrader.grading.objective import ObjectiveGrader
from examgrader.grading.strategy import strategy_for
from examgrader.services.access import find_active_assignment
from examgrader.services.grade_service import GradeRecordManager


def _require_student(user: User) -> None:
    if user.role != UserRole.STUDENT:
        raise AuthorizationError("Only students can take exams", {'role': user.role.value})


def index_answers(answers: Sequence[Tuple[str, AnswerPayload]]) -> Dict[str, AnswerPayload]:
    """
    Map question id to answer, rejecting malformed batches.

    Raises:
        ValidationError: Missing batch, empty question id or duplicate question id
    """
    if answers is None:
        raise ValidationError("Answers are required")

    indexed: Dict[str, AnswerPayload] = {}
    for question_id, answer in answers:
        if not question_id:
            raise ValidationError("Each answer must reference a question")
        if question_id in indexed:
            raise ValidationError("Duplicate answer for question", {'question_id': question_id})
        if answer is not None and not isinstance(answer, (str, list)):
            raise ValidationError("Unsupported answer format", {'question_id': question_id})
        indexed[question_id] = answer
    return indexed


def _manual_result(question: GradableQuestion) -> QuestionResult:
    return QuestionResult(
        question_id=question.id,
        strategy=GradingStrategy.MANUAL_ONLY,
        marks=question.marks,
        score=0.0,
        feedback=FEEDBACK_PENDING_REVIEW,
        ai_score=None,
        needs_review=True,
    )


def _blank_result(question: GradableQuestion, strategy: GradingStrategy) -> QuestionResult:
    return QuestionResult(
        question_id=question.id,
        strategy=strategy,
        marks=question.marks,
        score=0.0,
        feedback=FEEDBACK_NO_ANSWER,
        ai_score=None,
    )


def minutes_between(started, finished) -> int:
    """Whole minutes elapsed, never negative."""
    return max(int((finished - started).total_seconds() // 60), 0)


class SubmissionService:
    """
    Orchestrates start and submission of exam attempts.

    The scoring client is injected; pass NullScoringClient to grade without
    an external service (subjective answers then wait for manual review).
    """

    def __init__(
        self,
        db: Session,
        scoring_client: ScoringClient,
        settings: Optional[Settings] = None,
        grade_manager: Optional[GradeRecordManager] = None
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.scoring_client = scoring_client
        self.objective = ObjectiveGrader()
        self.assisted = AssistedGrader(scoring_client, RetryPolicy.from_settings(self.settings))
        self.aggregator = ScoreAggregator()
        self.grade_manager = grade_manager or GradeRecordManager(db, aggregator=self.aggregator)

    # ==================== Start ====================

    def _load_exam(self, exam_id: str) -> Exam:
        exam = self.db.query(Exam).filter(Exam.id == exam_id).first()
        if exam is None:
            raise NotFoundError("Exam not found", {'exam_id': exam_id})
        return exam

    def start_attempt(self, exam_id: str, student: User) -> ExamAttempt:
        """
        Open a new attempt for an assigned student.

        Enforces the assignment's attempt limit and availability window.
        """
        _require_student(student)
        exam = self._load_exam(exam_id)

        assignment = find_active_assignment(self.db, exam.id, student.id)
        if assignment is None:
            raise NotAssignedError("You are not assigned to this exam", {'exam_id': exam_id})

        attempts_used = (
            self.db.query(ExamAttempt)
            .filter(ExamAttempt.exam_id == exam.id, ExamAttempt.student_id == student.id)
            .count()
        )
        if attempts_used >= assignment.max_attempts:
            raise AuthorizationError(
                "Maximum attempts reached",
                {'exam_id': exam_id, 'max_attempts': assignment.max_attempts}
            )

        now = utcnow()
        if assignment.start_date and assignment.start_date > now:
            raise AuthorizationError("Exam is not yet available", {'exam_id': exam_id})
        if assignment.due_date and assignment.due_date < now and not assignment.allow_late_submission:
            raise AuthorizationError("Exam is past due date", {'exam_id': exam_id})

        attempt = ExamAttempt(exam_id=exam.id, student_id=student.id, started_at=now)
        self.db.add(attempt)
        self.db.commit()
        logger.info(f"Student {student.id} started attempt {attempt.id} on exam {exam.id}")
        return attempt

    # ==================== Submit ====================

    def _resolve_attempt(self, exam: Exam, student: User, attempt_id: Optional[str]) -> ExamAttempt:
        if attempt_id:
            attempt = self.db.query(ExamAttempt).filter(ExamAttempt.id == attempt_id).first()
            if attempt is None:
                raise NotFoundError("Exam attempt not found", {'attempt_id': attempt_id})
            if attempt.student_id != student.id:
                raise AuthorizationError("Invalid attempt", {'attempt_id': attempt_id})
            if attempt.exam_id != exam.id:
                raise ValidationError(
                    "Attempt does not belong to this exam",
                    {'attempt_id': attempt_id, 'exam_id': exam.id}
                )
            if attempt.is_completed:
                raise AlreadySubmittedError(attempt_id)
            return attempt

        if find_active_assignment(self.db, exam.id, student.id) is None:
            raise NotAssignedError("You are not assigned to this exam", {'exam_id': exam.id})

        attempt = ExamAttempt(exam_id=exam.id, student_id=student.id, started_at=utcnow())
        self.db.add(attempt)
        self.db.flush()
        return attempt

    def _gradable_questions(self, exam: Exam) -> List[GradableQuestion]:
        if not exam.questions:
            raise ConfigurationError("Exam has no questions", {'exam_id': exam.id})
        invalid = [q.id for q in exam.questions if not q.marks or q.marks <= 0]
        if invalid:
            raise ConfigurationError(
                "Every question must carry positive marks",
                {'exam_id': exam.id, 'question_ids': invalid}
            )
        return [q.to_gradable() for q in exam.questions]

    def _claim(self, attempt_id: str, submitted_at) -> None:
        """
        Atomically flip is_completed and commit.

        Losing the race, or finding the row locked by a concurrent writer,
        means the attempt is already being submitted.
        """
        try:
            claimed = (
                self.db.query(ExamAttempt)
                .filter(ExamAttempt.id == attempt_id, ExamAttempt.is_completed == False)
                .update(
                    {ExamAttempt.is_completed: True, ExamAttempt.submitted_at: submitted_at},
                    synchronize_session=False,
                )
            )
            if claimed:
                self.db.commit()
        except OperationalError as e:
            self.db.rollback()
            logger.warning(f"Attempt {attempt_id} is locked by a concurrent submission: {e.orig}")
            raise AlreadySubmittedError(attempt_id) from e

        if not claimed:
            self.db.rollback()
            logger.warning(f"Attempt {attempt_id} lost the submission race")
            raise AlreadySubmittedError(attempt_id)

    def _release(self, attempt_id: str, created: bool) -> None:
        """Undo a claim whose grading pass failed."""
        try:
            attempts = self.db.query(ExamAttempt).filter(ExamAttempt.id == attempt_id)
            if created:
                attempts.delete(synchronize_session=False)
            else:
                attempts.update(
                    {ExamAttempt.is_completed: False, ExamAttempt.submitted_at: None},
                    synchronize_session=False,
                )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Could not release claim on attempt {attempt_id}: {e.__class__.__name__}: {e}")

    async def submit(
        self,
        exam_id: str,
        student: User,
        answers: Sequence[Tuple[str, AnswerPayload]],
        attempt_id: Optional[str] = None
    ) -> SubmissionResult:
        """
        Grade and close an attempt.

        Args:
            exam_id: Exam being submitted
            student: Authenticated STUDENT
            answers: (question_id, answer) pairs; unanswered questions may be omitted
            attempt_id: Existing attempt owned by the student, or None to create one

        Returns:
            SubmissionResult with the preliminary summary and per-question results

        Raises:
            AuthorizationError: Wrong role or not the attempt's owner
            NotAssignedError: No active assignment (new attempts only)
            NotFoundError: Unknown exam or attempt
            AlreadySubmittedError: Attempt already completed or being submitted
            ValidationError: Malformed answers
            ConfigurationError: Exam without marks
        """
        _require_student(student)
        answer_map = index_answers(answers)
        exam = self._load_exam(exam_id)

        questions = self._gradable_questions(exam)
        unknown = set(answer_map) - {q.id for q in questions}
        if unknown:
            raise ValidationError(
                "Answers reference questions outside this exam",
                {'question_ids': sorted(unknown)}
            )

        created = attempt_id is None
        attempt = self._resolve_attempt(exam, student, attempt_id)
        attempt_id = attempt.id
        student_id = student.id
        started_at = attempt.started_at
        subject, grade_level = exam.subject, exam.grade_level
        submitted_at = utcnow()
        self._claim(attempt_id, submitted_at)

        try:
            results = await self._grade_all(questions, answer_map, subject, grade_level)

            summary = self.aggregator.summarize(results)
            overall_feedback = build_overall_feedback(summary, results)
            ai_analysis = None
            if self.settings.generate_ai_analysis:
                ai_analysis = await generate_ai_analysis(
                    self.scoring_client,
                    summary,
                    subject=subject,
                    grade_level=grade_level,
                    timeout_seconds=self.settings.scoring_timeout_seconds,
                )
                if ai_analysis:
                    overall_feedback = ai_analysis["feedback"]

            # No awaits from here to the commit.
            for question, result in zip(questions, results):
                self.db.add(Answer(
                    attempt_id=attempt_id,
                    question_id=question.id,
                    answer=answer_map.get(question.id),
                    ai_score=result.ai_score,
                    ai_feedback=result.feedback,
                    final_score=result.score,
                    strategy=result.strategy.value,
                    needs_review=result.needs_review,
                ))
            attempt.time_spent = minutes_between(started_at, submitted_at)

            grade = self.grade_manager.record_automated_pass(
                attempt, summary, results, overall_feedback, ai_analysis
            )
            status = grade.status
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Submission of attempt {attempt_id} failed, releasing claim: {e.__class__.__name__}: {e}")
            self._release(attempt_id, created)
            raise

        pending = sum(1 for r in results if r.needs_review)
        logger.info(
            f"Attempt {attempt_id} submitted by {student_id}: {summary.total_score:g}/{summary.max_score:g}, "
            f"{pending} question(s) pending review"
        )
        return SubmissionResult(
            attempt_id=attempt_id,
            summary=summary,
            results=results,
            status=status,
        )

    async def _grade_all(
        self,
        questions: List[GradableQuestion],
        answer_map: Dict[str, AnswerPayload],
        subject: Optional[str] = None,
        grade_level: Optional[str] = None
    ) -> List[QuestionResult]:
        """Grade every question; results come back in exam order."""
        semaphore = asyncio.Semaphore(self.settings.scoring_concurrency)
        graded: Dict[str, QuestionResult] = {}
        pending: Dict[str, Awaitable[QuestionResult]] = {}

        async def assisted(question: GradableQuestion, answer: AnswerPayload) -> QuestionResult:
            context = {
                "difficulty": question.difficulty,
                "grade_level": grade_level,
                "subject": subject,
            }
            async with semaphore:
                return await self.assisted.grade(
                    question, answer, {k: v for k, v in context.items() if v is not None}
                )

        for question in questions:
            answer = answer_map.get(question.id)
            strategy = strategy_for(question.question_type)

            if is_blank(answer):
                graded[question.id] = _blank_result(question, strategy)
            elif strategy == GradingStrategy.OBJECTIVE:
                graded[question.id] = self.objective.grade(question, answer)
            elif strategy == GradingStrategy.ASSISTED:
                pending[question.id] = assisted(question, answer)
            else:
                graded[question.id] = _manual_result(question)

        if pending:
            assisted_results = await asyncio.gather(*pending.values())
            graded.update(zip(pending.keys(), assisted_results))

        return [graded[q.id] for q in questions]
