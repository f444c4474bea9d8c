"""
FastAPI application for the exam grading service.

Wires routers, middleware, rate limiting, error handling and the injected
scoring client / notifier.
"""

from typing import Optional

from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi.errors import RateLimitExceeded

from examgrader import __version__
from examgrader.ai.base_provider import ScoringClient
from examgrader.ai.provider_factory import create_scoring_client
from examgrader.api.dependencies import limiter
from examgrader.api.exams import router as exams_router
from examgrader.api.health import router as health_router
from examgrader.api.results import router as results_router
from examgrader.config.logging_config import setup_structured_logging
from examgrader.config.settings import get_settings
from examgrader.db import init_db
from examgrader.middleware.error_handler import init_sentry, register_exception_handlers
from examgrader.middleware.http import RequestLoggingMiddleware, SecurityHeadersMiddleware
from examgrader.services.notifications import GradeNotifier, create_notifier


def create_app(
    scoring_client: Optional[ScoringClient] = None,
    notifier: Optional[GradeNotifier] = None,
    initialize_database: bool = True
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        scoring_client: Client for assisted grading (default: from settings)
        notifier: Grade-published notifier (default: from settings)
        initialize_database: Create tables on startup

    Returns:
        FastAPI application instance
    """
    settings = get_settings()

    app = FastAPI(
        title="Exam Grader",
        description="Grading pipeline for exam attempts with assisted scoring and a manual publish gate",
        version=__version__
    )

    app.state.scoring_client = scoring_client or create_scoring_client(settings)
    app.state.notifier = notifier or create_notifier(settings)

    # Rate limiting
    app.state.limiter = limiter

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={"detail": "Too many requests. Try again later."},
        )

    register_exception_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    @app.on_event("startup")
    async def startup_event():
        setup_structured_logging(level=settings.log_level, log_file=settings.log_file)
        init_sentry(
            dsn=settings.sentry_dsn,
            environment=settings.sentry_environment,
            sample_rate=settings.sentry_traces_sample_rate,
            debug=(settings.sentry_environment == "development")
        )
        if initialize_database:
            init_db()
            logger.info("Database initialized")
        logger.info(f"Exam grader started, scoring client: {app.state.scoring_client.name}")

    @app.on_event("shutdown")
    async def shutdown_event():
        close = getattr(app.state.scoring_client, "aclose", None)
        if close is not None:
            await close()

    app.include_router(health_router, tags=["health"])
    app.include_router(exams_router, prefix="/api")
    app.include_router(results_router, prefix="/api")

    @app.get("/")
    async def root():
        return {"name": "Exam Grader", "version": __version__, "docs": "/docs"}

    return app
