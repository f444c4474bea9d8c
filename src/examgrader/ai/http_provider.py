"""
HTTP scoring client for a dedicated scoring service.

Request:  {"question", "referenceAnswer", "studentAnswer", "maxMarks", "context"?}
Response: {"score": number, "feedback": string}

Parse failures, timeouts and non-2xx responses all surface as
ExternalServiceError subclasses.
"""

import time
from typing import Optional

import httpx

from examgrader.ai.base_provider import ScoringClient
from examgrader.ai.response_parser import parse_scoring_response
from examgrader.config.constants import SCORING_CONNECT_TIMEOUT, SCORING_TIMEOUT_SECONDS
from examgrader.core.exceptions import (
    ScoringTimeoutError,
    ScoringTransportError,
    ScoringUnavailableError,
    ScoringResponseError,
)
from examgrader.core.models import ScoringRequest, ScoringResponse


class HttpScoringClient(ScoringClient):
    """Scoring client speaking the JSON contract over HTTP."""

    def __init__(
        self,
        base_url: str,
        token: str = "",
        timeout_seconds: float = SCORING_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__()
        self.base_url = base_url.rstrip("/")
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=httpx.Timeout(timeout_seconds, connect=SCORING_CONNECT_TIMEOUT),
            transport=transport,
        )

    @property
    def name(self) -> str:
        return f"http/{self.base_url}"

    async def _post(self, path: str, payload: dict, operation: str) -> httpx.Response:
        try:
            response = await self.client.post(path, json=payload)
        except httpx.TimeoutException as e:
            raise ScoringTimeoutError(f"Timeout during {operation}: {e}") from e
        except httpx.TransportError as e:
            raise ScoringTransportError(f"Failed to connect during {operation}: {e}") from e

        if response.status_code == 429 or response.status_code >= 500:
            raise ScoringTransportError(
                f"Transient HTTP error during {operation}", {'status_code': response.status_code}
            )
        if not response.is_success:
            raise ScoringUnavailableError(
                f"Scoring service refused {operation}", {'status_code': response.status_code}
            )
        return response

    async def score(self, request: ScoringRequest) -> ScoringResponse:
        started = time.time()
        try:
            response = await self._post("/score", request.to_wire(), "scoring call")
            try:
                body = response.json()
            except ValueError as e:
                raise ScoringResponseError("Scoring response is not valid JSON") from e
            result = parse_scoring_response(body if isinstance(body, dict) else None)
        except Exception:
            self._log_call("score", started, ok=False)
            raise

        self._log_call("score", started, ok=True)
        return result

    async def aclose(self) -> None:
        await self.client.aclose()
