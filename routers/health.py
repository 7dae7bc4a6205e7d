# routers/health.py

import logging
import platform
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from app.config import settings
from app.db import get_db

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

# Riferimento per l'uptime del processo
_STARTED_AT = time.monotonic()

router = APIRouter(tags=["Health"])


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


# ------------------------------
# GET /health → verifica connessione DB
# ------------------------------
@router.get("/health")
def health(db: Session = Depends(get_db)):
    try:
        row = db.execute(text("SELECT 1 AS health_check")).first()
        if row is None:
            raise RuntimeError("Database query returned no results")
    except Exception as e:
        logger.error("Health check failed: %s", str(e))
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "unhealthy",
                "timestamp": _timestamp(),
                "database": "disconnected",
                "error": str(e),
            },
        )

    return {
        "status": "healthy",
        "timestamp": _timestamp(),
        "database": "connected",
        "environment": settings.env,
        "uptime": round(time.monotonic() - _STARTED_AT, 3),
    }


@router.get("/test")
def test_endpoint():
    return {
        "message": "Server is working",
        "timestamp": _timestamp(),
        "pythonVersion": platform.python_version(),
        "environment": settings.env,
    }


@router.get("/api/version")
def api_version():
    return {
        "version": API_VERSION,
        "graphql": "/graphql",
        "health": "/health",
        "timestamp": _timestamp(),
    }
