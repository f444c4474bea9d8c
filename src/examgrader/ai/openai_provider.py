"""
OpenAI-compatible scoring client.

Works with any OpenAI-compatible API (OpenAI, OpenRouter, etc.) by asking a
chat model for the fixed JSON scoring schema.
"""

import time
from typing import Optional

import httpx
from loguru import logger
from openai import (
    AsyncOpenAI,
    OpenAIError,
    APITimeoutError,
    APIConnectionError,
    RateLimitError,
    InternalServerError,
    APIStatusError,
)

from examgrader.ai.base_provider import ScoringClient
from examgrader.ai.response_parser import parse_scoring_response
from examgrader.config.constants import (
    MAX_TOKENS,
    TEMPERATURE,
    ANALYSIS_MAX_TOKENS,
    ANALYSIS_TEMPERATURE,
    SCORING_CONNECT_TIMEOUT,
    SCORING_TIMEOUT_SECONDS,
)
from examgrader.config.prompts import (
    SCORING_SYSTEM_PROMPT,
    ANALYSIS_SYSTEM_PROMPT,
    build_scoring_prompt,
)
from examgrader.core.exceptions import (
    ScoringTimeoutError,
    ScoringTransportError,
    ScoringUnavailableError,
    ScoringResponseError,
)
from examgrader.core.models import ScoringRequest, ScoringResponse


def translate_openai_error(exc: OpenAIError, operation: str):
    """Map an OpenAI SDK exception onto the scoring error taxonomy."""
    if isinstance(exc, APITimeoutError):
        return ScoringTimeoutError(f"Timeout during {operation}: {exc}")
    if isinstance(exc, APIConnectionError):
        return ScoringTransportError(f"Failed to connect during {operation}: {exc}")
    if isinstance(exc, (RateLimitError, InternalServerError)):
        return ScoringTransportError(f"Transient API error during {operation}: {exc}")
    if isinstance(exc, APIStatusError):
        return ScoringUnavailableError(
            f"API refused {operation}", {'status_code': exc.status_code}
        )
    return ScoringUnavailableError(f"API error during {operation}: {exc}")


class OpenAIScoringClient(ScoringClient):
    """
    Scoring client for OpenAI-compatible APIs.

    SDK-level retries are disabled: the assisted grader owns the retry policy.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: Optional[str] = None,
        timeout_seconds: float = SCORING_TIMEOUT_SECONDS,
        client: Optional[AsyncOpenAI] = None,
    ):
        super().__init__()
        self.model = model
        self.base_url = base_url
        self.client = client or self._create_client(api_key, timeout_seconds)

    def _create_client(self, api_key: str, timeout_seconds: float) -> AsyncOpenAI:
        """Create the async OpenAI client."""
        timeout = httpx.Timeout(
            connect=SCORING_CONNECT_TIMEOUT,
            read=timeout_seconds,
            write=SCORING_CONNECT_TIMEOUT,
            pool=SCORING_CONNECT_TIMEOUT
        )

        client_kwargs = {
            "api_key": api_key,
            "timeout": timeout,
            "max_retries": 0,
        }
        if self.base_url:
            client_kwargs["base_url"] = self.base_url

        return AsyncOpenAI(**client_kwargs)

    @property
    def name(self) -> str:
        return f"openai/{self.model}"

    async def score(self, request: ScoringRequest) -> ScoringResponse:
        """Score one answer through a JSON-mode chat completion."""
        started = time.time()
        prompt = build_scoring_prompt(
            question=request.question,
            reference_answer=request.reference_answer,
            student_answer=request.student_answer,
            max_marks=request.max_marks,
            context=request.context,
        )

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SCORING_SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=MAX_TOKENS,
                temperature=TEMPERATURE,
                response_format={"type": "json_object"},
            )
        except OpenAIError as e:
            self._log_call("score", started, ok=False)
            raise translate_openai_error(e, "scoring call") from e

        if not response.choices:
            self._log_call("score", started, ok=False)
            raise ScoringResponseError("Scoring response has no choices")

        content = response.choices[0].message.content or ""
        try:
            result = parse_scoring_response(content)
        except ScoringResponseError:
            self._log_call("score", started, ok=False)
            raise

        self._log_call("score", started, ok=True)
        logger.debug(f"{self.name} scored answer in {self.call_history[-1]['duration_ms']}ms")
        return result

    async def analyze(self, prompt: str) -> str:
        """Generate a short performance narrative."""
        started = time.time()
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": ANALYSIS_SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=ANALYSIS_MAX_TOKENS,
                temperature=ANALYSIS_TEMPERATURE,
            )
        except OpenAIError as e:
            self._log_call("analyze", started, ok=False)
            raise translate_openai_error(e, "analysis call") from e

        text = (response.choices[0].message.content or "").strip() if response.choices else ""
        self._log_call("analyze", started, ok=bool(text))
        if not text:
            raise ScoringResponseError("Empty analysis response")
        return text
