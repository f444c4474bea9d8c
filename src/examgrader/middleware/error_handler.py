"""
Error tracking and exception handling for the exam grading API.

Integrates Sentry for unhandled errors and maps the domain exception
hierarchy onto HTTP responses.
"""

import logging

import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from examgrader.core.exceptions import (
    ExamGraderError,
    ValidationError,
    AuthorizationError,
    NotFoundError,
    AlreadySubmittedError,
    ConfigurationError,
)

# Most specific first; the first matching class wins.
ERROR_STATUS_CODES = (
    (AlreadySubmittedError, 400),
    (ValidationError, 400),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (ConfigurationError, 500),
)


def init_sentry(
    dsn: str,
    environment: str,
    sample_rate: float = 0.1,
    debug: bool = False
) -> None:
    """
    Initialize Sentry with FastAPI integration.

    Args:
        dsn: Sentry DSN (empty disables error tracking)
        environment: 'development' or 'production'
        sample_rate: Traces sample rate outside development
        debug: Enable Sentry debug output
    """
    if not dsn:
        logger.warning("Sentry DSN not configured - error tracking disabled")
        return

    traces_sample_rate = 1.0 if environment == "development" else sample_rate

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        traces_sample_rate=traces_sample_rate,
        debug=debug,
        integrations=[
            FastApiIntegration(),
            LoggingIntegration(
                level=logging.INFO,
                event_level=logging.ERROR
            )
        ],
        before_send_transaction=lambda event, hint: None if event.get("transaction", "").startswith("/health") else event,
        before_send=_filter_sensitive_data
    )

    logger.info(f"Sentry initialized: environment={environment}, traces_sample_rate={traces_sample_rate}")


def _filter_sensitive_data(event, hint):
    """
    Filter sensitive data before sending to Sentry.

    Removes authorization headers, cookies, secrets and submitted answers.
    """
    request = event.get("request")
    if request and "headers" in request:
        request["headers"] = {
            k: v for k, v in request["headers"].items()
            if k.lower() not in ["authorization", "cookie", "x-api-key"]
        }
    if request and "data" in request:
        request["data"] = "[filtered]"

    if "extra" in event:
        for key in ["password", "token", "api_key", "secret", "jwt_secret", "answers"]:
            event["extra"].pop(key, None)

    return event


def status_code_for(exc: ExamGraderError) -> int:
    for error_class, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_class):
            return status_code
    return 500


async def domain_exception_handler(request: Request, exc: ExamGraderError) -> JSONResponse:
    """Translate a domain error into its HTTP status with a JSON body."""
    status_code = status_code_for(exc)
    if status_code >= 500:
        sentry_sdk.capture_exception(exc)
        logger.error(f"{exc.__class__.__name__} on {request.method} {request.url.path}: {exc}")
    else:
        logger.info(f"{exc.__class__.__name__} on {request.method} {request.url.path}: {exc.message}")

    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "error": exc.__class__.__name__},
    )


async def sentry_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler that captures errors in Sentry.

    Logs the failure and returns a generic message to the client.
    """
    sentry_sdk.capture_exception(exc)
    logger.opt(exception=exc).error(
        f"Unhandled exception on {request.method} {request.url.path}: {exc.__class__.__name__}"
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "An unexpected error occurred. The team has been notified."}
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ExamGraderError, domain_exception_handler)
    app.add_exception_handler(Exception, sentry_exception_handler)


def set_user_context(user_id: str, email: str = None, username: str = None) -> None:
    """
    Set user context in Sentry for error tracking.

    Args:
        user_id: User ID
        email: User email (optional)
        username: User name (optional)
    """
    sentry_sdk.set_user({
        "id": user_id,
        "email": email,
        "username": username
    })
