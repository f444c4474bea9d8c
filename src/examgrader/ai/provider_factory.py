"""
Factory for creating scoring client instances.

Uses a registry keyed by the configured provider name.
"""

from typing import Callable, Dict, List, Optional

from loguru import logger

from examgrader.ai.base_provider import ScoringClient, NullScoringClient
from examgrader.ai.http_provider import HttpScoringClient
from examgrader.ai.openai_provider import OpenAIScoringClient
from examgrader.config.settings import Settings, get_settings


def _create_openai(settings: Settings) -> ScoringClient:
    return OpenAIScoringClient(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        base_url=settings.openai_base_url,
        timeout_seconds=settings.scoring_timeout_seconds,
    )


def _create_http(settings: Settings) -> ScoringClient:
    return HttpScoringClient(
        base_url=settings.scoring_service_url,
        token=settings.scoring_service_token,
        timeout_seconds=settings.scoring_timeout_seconds,
    )


def _create_null(settings: Settings) -> ScoringClient:
    return NullScoringClient()


PROVIDER_REGISTRY: Dict[str, Callable[[Settings], ScoringClient]] = {
    "none": _create_null,
    "openai": _create_openai,
    "http": _create_http,
}


def create_scoring_client(settings: Optional[Settings] = None) -> ScoringClient:
    """
    Create a scoring client from settings.

    Args:
        settings: Settings to use (default: cached application settings)

    Returns:
        ScoringClient instance (NullScoringClient when unconfigured)
    """
    settings = settings or get_settings()
    provider_type = settings.scoring_provider.lower()

    if provider_type not in PROVIDER_REGISTRY:
        raise ValueError(f"Unknown provider: {provider_type}. Available: {list(PROVIDER_REGISTRY.keys())}")

    client = PROVIDER_REGISTRY[provider_type](settings)
    logger.info(f"Scoring client initialized: {client.name}")
    return client


def get_available_providers() -> List[str]:
    """Get provider names this build can construct."""
    return list(PROVIDER_REGISTRY.keys())
