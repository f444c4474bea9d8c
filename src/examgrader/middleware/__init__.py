"""HTTP middleware and exception handling."""

from examgrader.middleware.error_handler import (
    init_sentry,
    register_exception_handlers,
    set_user_context,
    status_code_for,
)
from examgrader.middleware.http import RequestLoggingMiddleware, SecurityHeadersMiddleware

__all__ = [
    'init_sentry',
    'register_exception_handlers',
    'set_user_context',
    'status_code_for',
    'RequestLoggingMiddleware',
    'SecurityHeadersMiddleware',
]
