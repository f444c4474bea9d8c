"""
Tests for response parsing and the HTTP / OpenAI scoring clients.
"""

import asyncio
import json

import httpx
import pytest

from examgrader.ai.http_provider import HttpScoringClient
from examgrader.ai.openai_provider import translate_openai_error
from examgrader.ai.provider_factory import create_scoring_client, get_available_providers
from examgrader.ai.response_parser import parse_scoring_response
from examgrader.config.settings import Settings
from examgrader.core.exceptions import (
    ScoringResponseError, ScoringTimeoutError, ScoringTransportError, ScoringUnavailableError,
)
from examgrader.core.models import ScoringRequest
from examgrader.utils.json_extractor import extract_json_from_response

REQUEST = ScoringRequest(
    question="What process do plants use to make food?",
    reference_answer="Photosynthesis",
    student_answer="photosynthesis",
    max_marks=5,
)


# ==================== Parsing ====================

def test_extract_plain_json():
    """Test JSON extraction from a plain body."""
    assert extract_json_from_response('{"score": 4, "feedback": "ok"}') == {"score": 4, "feedback": "ok"}


def test_extract_fenced_json_with_prose():
    """Test JSON extraction from a fenced block."""
    raw = 'Here is the grade:\n```json\n{"score": 3, "feedback": "Partly right"}\n```\nThanks'
    assert extract_json_from_response(raw) == {"score": 3, "feedback": "Partly right"}


def test_extract_repairs_trailing_comma():
    """Test JSON repair of trailing commas."""
    assert extract_json_from_response('{"score": 2, "feedback": "x",}') == {"score": 2, "feedback": "x"}


def test_extract_rejects_non_objects():
    """Test non-object JSON is rejected."""
    assert extract_json_from_response("") is None
    assert extract_json_from_response("no json here") is None
    assert extract_json_from_response("[1, 2]") is None


def test_parse_valid_response():
    """Test parsing a valid scoring response."""
    result = parse_scoring_response('{"score": 4, "feedback": "Good, minor omission"}')
    assert result.score == 4.0
    assert result.feedback == "Good, minor omission"


@pytest.mark.parametrize("raw", [
    None,
    "not json",
    '{"feedback": "missing score"}',
    '{"score": "4", "feedback": "string score"}',
    '{"score": true, "feedback": "bool score"}',
    '{"score": NaN, "feedback": "nan"}',
    '{"score": 4}',
    '{"score": 4, "feedback": 12}',
])
def test_parse_rejects_malformed(raw):
    """Test malformed scoring responses."""
    with pytest.raises(ScoringResponseError):
        parse_scoring_response(raw)


# ==================== HTTP client ====================

def _client(handler):
    return HttpScoringClient("http://scoring.local/", token="t0ken", transport=httpx.MockTransport(handler))


def test_http_client_sends_contract_and_parses():
    """Test HTTP scoring client round trip."""
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"score": 4, "feedback": "Good, minor omission"})

    client = _client(handler)
    result = asyncio.run(client.score(REQUEST))

    assert result.score == 4.0
    assert seen["path"] == "/score"
    assert seen["auth"] == "Bearer t0ken"
    assert seen["body"] == {
        "question": REQUEST.question,
        "referenceAnswer": "Photosynthesis",
        "studentAnswer": "photosynthesis",
        "maxMarks": 5,
    }
    assert client.call_history[-1]["ok"] is True


@pytest.mark.parametrize("status_code,error", [
    (500, ScoringTransportError),
    (503, ScoringTransportError),
    (429, ScoringTransportError),
    (400, ScoringUnavailableError),
    (401, ScoringUnavailableError),
])
def test_http_client_maps_status_codes(status_code, error):
    """Test HTTP status code mapping."""
    client = _client(lambda request: httpx.Response(status_code, json={"error": "nope"}))
    with pytest.raises(error):
        asyncio.run(client.score(REQUEST))
    assert client.call_history[-1]["ok"] is False


def test_http_client_rejects_non_json_body():
    """Test HTTP client with a non-JSON body."""
    client = _client(lambda request: httpx.Response(200, text="<html>oops</html>"))
    with pytest.raises(ScoringResponseError):
        asyncio.run(client.score(REQUEST))


def test_http_client_rejects_wrong_schema():
    """Test HTTP client with the wrong schema."""
    client = _client(lambda request: httpx.Response(200, json={"points": 4}))
    with pytest.raises(ScoringResponseError):
        asyncio.run(client.score(REQUEST))


def test_http_client_maps_timeouts_and_connection_errors():
    """Test HTTP timeout and connection error mapping."""
    def timeout(request):
        raise httpx.ReadTimeout("slow", request=request)

    def refused(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ScoringTimeoutError):
        asyncio.run(_client(timeout).score(REQUEST))
    with pytest.raises(ScoringTransportError):
        asyncio.run(_client(refused).score(REQUEST))


# ==================== OpenAI error mapping ====================

def test_openai_errors_map_onto_taxonomy():
    """Test OpenAI error mapping."""
    import openai

    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")

    assert isinstance(translate_openai_error(openai.APITimeoutError(request=request), "x"), ScoringTimeoutError)
    assert isinstance(
        translate_openai_error(openai.APIConnectionError(request=request), "x"), ScoringTransportError
    )
    rate_limited = openai.RateLimitError("slow down", response=httpx.Response(429, request=request), body=None)
    assert isinstance(translate_openai_error(rate_limited, "x"), ScoringTransportError)
    bad_request = openai.BadRequestError("bad", response=httpx.Response(400, request=request), body=None)
    assert isinstance(translate_openai_error(bad_request, "x"), ScoringUnavailableError)


# ==================== Factory ====================

def test_factory_builds_configured_clients():
    """Test scoring client factory."""
    base = {"jwt_secret": "test-secret-for-exam-grader-suite-0123456789"}

    assert create_scoring_client(Settings(**base, scoring_provider="none")).name == "none"
    http_client = create_scoring_client(
        Settings(**base, scoring_provider="http", scoring_service_url="http://scoring.local")
    )
    assert http_client.name == "http/http://scoring.local"
    openai_client = create_scoring_client(
        Settings(**base, scoring_provider="openai", openai_api_key="sk-test", openai_model="gpt-4o-mini")
    )
    assert openai_client.name == "openai/gpt-4o-mini"
    assert set(get_available_providers()) == {"none", "openai", "http"}


def test_settings_require_provider_credentials():
    """Test provider credential validation."""
    with pytest.raises(ValueError):
        Settings(jwt_secret="test-secret-for-exam-grader-suite-0123456789", scoring_provider="http",
                 scoring_service_url="")
    with pytest.raises(ValueError):
        Settings(jwt_secret="aaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa")
