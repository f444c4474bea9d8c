"""
Assisted grader for subjective questions.

Delegates scoring to an external ScoringClient under an explicit retry
policy. Any failure (transport, timeout, malformed response, service
unavailable) ends in the typed fallback result: score 0, "Pending manual
review". Nothing raised by the scoring service reaches the caller.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

from loguru import logger
from tenacity import (
    AsyncRetrying,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from examgrader.ai.base_provider import ScoringClient
from examgrader.config.constants import (
    FEEDBACK_PENDING_REVIEW,
    SCORING_BACKOFF_SECONDS,
    SCORING_MAX_ATTEMPTS,
    SCORING_MAX_BACKOFF_SECONDS,
    SCORING_TIMEOUT_SECONDS,
)
from examgrader.config.settings import Settings
from examgrader.core.exceptions import (
    ExternalServiceError,
    ScoringTimeoutError,
    ScoringTransportError,
)
from examgrader.core.models import (
    AnswerPayload,
    GradableQuestion,
    GradingStrategy,
    QuestionResult,
    ScoringRequest,
    ScoringResponse,
)


@dataclass
class RetryPolicy:
    """Bounded retry for transient scoring failures."""
    max_attempts: int = SCORING_MAX_ATTEMPTS
    backoff_seconds: float = SCORING_BACKOFF_SECONDS
    max_backoff_seconds: float = SCORING_MAX_BACKOFF_SECONDS
    timeout_seconds: float = SCORING_TIMEOUT_SECONDS

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.scoring_max_attempts,
            backoff_seconds=settings.scoring_backoff_seconds,
            timeout_seconds=settings.scoring_timeout_seconds,
        )


def clamp_score(score: float, marks: int) -> float:
    """Clamp a service-provided score into [0, marks]."""
    return min(max(score, 0.0), float(marks))


def fallback_result(question: GradableQuestion) -> QuestionResult:
    """Result used whenever automated subjective grading cannot complete."""
    return QuestionResult(
        question_id=question.id,
        strategy=GradingStrategy.ASSISTED,
        marks=question.marks,
        score=0.0,
        feedback=FEEDBACK_PENDING_REVIEW,
        ai_score=None,
        needs_review=True,
    )


class AssistedGrader:
    """
    Scores subjective answers through an injected ScoringClient.

    Transport errors and timeouts are retried up to `max_attempts` with
    exponential backoff; malformed or refused responses are not retried.
    """

    def __init__(self, client: ScoringClient, policy: Optional[RetryPolicy] = None):
        self.client = client
        self.policy = policy or RetryPolicy()

    async def grade(
        self,
        question: GradableQuestion,
        answer: AnswerPayload,
        context: Optional[dict] = None
    ) -> QuestionResult:
        """
        Grade one answer. Never raises.

        Args:
            question: Question being graded (marks is the upper bound)
            answer: Student's raw answer
            context: Optional difficulty / grade level hints

        Returns:
            QuestionResult with the clamped score, or the fallback result
        """
        request = ScoringRequest(
            question=question.text,
            reference_answer=question.correct_answer,
            student_answer=answer,
            max_marks=question.marks,
            context=context,
        )

        try:
            response = await self._score_with_retry(request)
        except ExternalServiceError as e:
            logger.warning(
                f"Assisted grading fell back for question {question.id} "
                f"via {self.client.name}: {e.__class__.__name__}: {e.message}"
            )
            return fallback_result(question)
        except Exception as e:
            logger.error(
                f"Unexpected scoring failure for question {question.id} "
                f"via {self.client.name}: {e.__class__.__name__}"
            )
            return fallback_result(question)

        score = clamp_score(response.score, question.marks)
        if score != response.score:
            logger.info(f"Clamped score {response.score} to {score} for question {question.id}")

        return QuestionResult(
            question_id=question.id,
            strategy=GradingStrategy.ASSISTED,
            marks=question.marks,
            score=score,
            feedback=response.feedback,
            ai_score=score,
        )

    async def _score_with_retry(self, request: ScoringRequest) -> ScoringResponse:
        response = None
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.policy.max_attempts),
            wait=wait_exponential(
                multiplier=self.policy.backoff_seconds,
                max=self.policy.max_backoff_seconds,
            ),
            retry=retry_if_exception_type(ScoringTransportError),
            before_sleep=self._log_retry,
            reraise=True,
        ):
            with attempt:
                response = await self._score_once(request)
        return response

    async def _score_once(self, request: ScoringRequest) -> ScoringResponse:
        """One bounded call; the timeout is enforced here, not left to the client."""
        try:
            return await asyncio.wait_for(
                self.client.score(request),
                timeout=self.policy.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise ScoringTimeoutError(
                f"Scoring call exceeded {self.policy.timeout_seconds}s"
            ) from e

    def _log_retry(self, retry_state) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            f"Retry {retry_state.attempt_number}/{self.policy.max_attempts} for scoring call "
            f"after {exc.__class__.__name__ if exc else 'error'}"
        )
