"""
JSON extraction utilities for scoring-service responses.

Language-model backends sometimes wrap the JSON object in a markdown fence
or surround it with prose even when asked for bare JSON.
"""

import json
import re
from typing import Optional, Dict, Any

from loguru import logger


def _strip_code_fence(text: str) -> str:
    """Return the body of the first ``` fenced block, or the text unchanged."""
    if '```' not in text:
        return text

    start = text.find('```') + 3
    # Skip language identifier (```json, ```JSON, ...)
    while start < len(text) and text[start] not in '\n\r{':
        start += 1
    end = text.find('```', start)
    if end > start:
        return text[start:end].strip()
    return text


def extract_json_from_response(raw_response: str) -> Optional[Dict[str, Any]]:
    """
    Extract a JSON object from a model response.

    Handles:
    - ```json code blocks
    - ``` code blocks (without language specifier)
    - Raw JSON objects embedded in text

    Args:
        raw_response: The raw text response

    Returns:
        Parsed JSON dictionary, or None if extraction/parsing fails
    """
    if not raw_response:
        return None

    candidate = _strip_code_fence(raw_response.strip())

    # Find JSON object bounds (first { to last })
    brace_start = candidate.find('{')
    brace_end = candidate.rfind('}')
    if brace_start < 0 or brace_end <= brace_start:
        return None

    json_str = candidate[brace_start:brace_end + 1]
    try:
        parsed = json.loads(json_str)
    except json.JSONDecodeError as e:
        logger.debug(f"JSON parse error: {e}")
        parsed = _try_repair_and_parse(json_str)

    return parsed if isinstance(parsed, dict) else None


def _try_repair_and_parse(json_str: str) -> Optional[Any]:
    """Attempt to repair trailing commas and stray control characters."""
    repaired = re.sub(r',\s*([}\]])', r'\1', json_str)
    repaired = re.sub(r'[\x00-\x08\x0b\x0c\x0e-\x1f]', '', repaired)

    try:
        return json.loads(repaired)
    except json.JSONDecodeError:
        return None
