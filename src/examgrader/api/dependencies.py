"""
Shared FastAPI dependencies.

The scoring client and notifier live on app.state; tests replace them through
app.dependency_overrides.
"""

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from examgrader.ai.base_provider import ScoringClient
from examgrader.services.notifications import GradeNotifier


def get_user_key(request: Request) -> str:
    """
    Rate limit key: the authenticated user when known, otherwise the client IP.
    """
    if hasattr(request.state, 'user_id'):
        return f"user:{request.state.user_id}"
    return f"ip:{get_remote_address(request)}"


# Module-level so routers can decorate endpoints without importing the app.
limiter = Limiter(key_func=get_user_key)


def get_scoring_client(request: Request) -> ScoringClient:
    return request.app.state.scoring_client


def get_notifier(request: Request) -> GradeNotifier:
    return request.app.state.notifier
