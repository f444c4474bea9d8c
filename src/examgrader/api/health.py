"""
Health check endpoint.

Provides system health status for load balancers and monitoring.
"""

from fastapi import APIRouter, Depends, HTTPException
from loguru import logger
from sqlalchemy import text
from sqlalchemy.orm import Session

from examgrader import __version__
from examgrader.db import get_db

router = APIRouter()


@router.get("/health")
async def health_check(db: Session = Depends(get_db)):
    """
    Health check endpoint with database status.

    Returns:
        JSON with status, version, and database connection status.
        HTTP 200 if healthy, 503 if database disconnected.
    """
    health_status = {
        "status": "healthy",
        "version": __version__,
        "database": "unknown"
    }

    try:
        db.execute(text("SELECT 1"))
        health_status["database"] = "connected"
    except Exception as e:
        health_status["status"] = "unhealthy"
        health_status["database"] = f"disconnected: {e.__class__.__name__}"
        logger.error(f"Health check failed: {e}")
        raise HTTPException(status_code=503, detail=health_status)

    return health_status
