"""
Scoring clients for assisted grading.

Provides the ScoringClient interface, the null fallback and the concrete
OpenAI-compatible and HTTP implementations.
"""

from examgrader.ai.base_provider import ScoringClient, NullScoringClient
from examgrader.ai.openai_provider import OpenAIScoringClient
from examgrader.ai.http_provider import HttpScoringClient
from examgrader.ai.provider_factory import create_scoring_client, get_available_providers
from examgrader.ai.response_parser import parse_scoring_response

__all__ = [
    'ScoringClient',
    'NullScoringClient',
    'OpenAIScoringClient',
    'HttpScoringClient',
    'create_scoring_client',
    'get_available_providers',
    'parse_scoring_response',
]
