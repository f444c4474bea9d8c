"""
Shared response parser for scoring clients.

Validates the fixed {"score": number, "feedback": string} schema in a
provider-independent way.
"""

from typing import Any, Dict, Union

from pydantic import ValidationError as PydanticValidationError

from examgrader.core.exceptions import ScoringResponseError
from examgrader.core.models import ScoringResponse
from examgrader.utils.json_extractor import extract_json_from_response


def parse_scoring_response(raw: Union[str, Dict[str, Any], None]) -> ScoringResponse:
    """
    Parse a scoring-service response.

    Expected format:
    {"score": 4, "feedback": "Good, minor omission"}

    Args:
        raw: Response text (possibly fenced) or an already decoded object

    Returns:
        Validated ScoringResponse (score not yet clamped)

    Raises:
        ScoringResponseError: If the payload is missing or does not match the schema
    """
    if isinstance(raw, dict):
        payload = raw
    else:
        payload = extract_json_from_response(raw or "")

    if payload is None:
        raise ScoringResponseError("Scoring response is not a JSON object")

    try:
        return ScoringResponse.model_validate(payload)
    except PydanticValidationError as e:
        raise ScoringResponseError(
            "Scoring response does not match schema",
            {'errors': [err.get('msg') for err in e.errors()]}
        ) from e
