"""
Base scoring client for the external assisted-grading service.

The pipeline never talks to a vendor SDK directly: it receives a
ScoringClient instance, so tests and unconfigured deployments can pass the
null implementation.
"""

import time
from abc import ABC, abstractmethod
from typing import Dict, Any, List

from examgrader.core.exceptions import ScoringUnavailableError
from examgrader.core.models import ScoringRequest, ScoringResponse


class ScoringClient(ABC):
    """
    Abstract base class for scoring clients.

    Subclasses must implement:
    - name
    - score()

    and may implement analyze() for the holistic narrative.
    Every failure must surface as an ExternalServiceError subclass.
    """

    def __init__(self):
        self.call_history: List[Dict[str, Any]] = []

    @property
    @abstractmethod
    def name(self) -> str:
        """Identifier used in logs."""

    @property
    def is_configured(self) -> bool:
        return True

    @abstractmethod
    async def score(self, request: ScoringRequest) -> ScoringResponse:
        """
        Score one answer.

        Raises:
            ScoringTransportError: Connection failure, rate limiting, 5xx
            ScoringTimeoutError: The call exceeded its time bound
            ScoringResponseError: Malformed response
            ScoringUnavailableError: Service refused or is not configured
        """

    async def analyze(self, prompt: str) -> str:
        """Produce a short narrative about an attempt."""
        raise ScoringUnavailableError(f"{self.name} does not support performance analysis")

    def _log_call(self, operation: str, started: float, ok: bool) -> None:
        """Track call outcomes for diagnostics (never stores answer text)."""
        self.call_history.append({
            "operation": operation,
            "duration_ms": round((time.time() - started) * 1000, 1),
            "ok": ok,
        })


class NullScoringClient(ScoringClient):
    """
    Scoring client used when no service is configured.

    Every call fails with ScoringUnavailableError, which the assisted grader
    turns into the manual-review fallback.
    """

    @property
    def name(self) -> str:
        return "none"

    @property
    def is_configured(self) -> bool:
        return False

    async def score(self, request: ScoringRequest) -> ScoringResponse:
        raise ScoringUnavailableError("No scoring service configured")
