"""
Health Check Endpoints
Endpoints for health checks and status monitoring.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import APISettings, get_settings
from ..dependencies import get_db
from ..middleware.timing import get_latency_tracker
from ..services.hub import get_chat_hub, get_notification_hub

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check() -> Dict[str, str]:
    """Basic health check."""
    return {"status": "healthy", "timestamp": _now()}


@router.get("/status", status_code=status.HTTP_200_OK)
async def status_check(
    settings: APISettings = Depends(get_settings),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """
    Detailed status check.

    Reports the database connection, realtime hub usage and request latency.
    """
    status_info = {
        "status": "healthy",
        "timestamp": _now(),
        "version": settings.version,
        "environment": settings.environment,
        "components": {},
    }

    try:
        db.execute(text("SELECT 1"))
        status_info["components"]["database"] = {
            "status": "healthy",
            "url": settings.database_url.split("@")[-1],  # Hide credentials
        }
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        status_info["components"]["database"] = {"status": "unhealthy", "error": str(e)}
        status_info["status"] = "degraded"

    status_info["components"]["realtime"] = {
        "notification_connections": get_notification_hub().connection_count(),
        "chat_connections": get_chat_hub().connection_count(),
    }

    latency_stats = get_latency_tracker().get_stats()
    status_info["performance"] = {
        "request_count": latency_stats["count"],
        "latency_p50_ms": round(latency_stats["p50"], 2),
        "latency_p95_ms": round(latency_stats["p95"], 2),
        "latency_p99_ms": round(latency_stats["p99"], 2),
    }

    return status_info


@router.get("/metrics", status_code=status.HTTP_200_OK)
async def get_metrics() -> Dict[str, Any]:
    """Latency statistics of recent requests."""
    stats = get_latency_tracker().get_stats()

    return {
        "requests": {"total": stats["total"], "window": stats["count"], "server_errors": stats["server_errors"]},
        "latency": {
            "p50_ms": round(stats["p50"], 2),
            "p95_ms": round(stats["p95"], 2),
            "p99_ms": round(stats["p99"], 2),
            "mean_ms": round(stats["mean"], 2),
            "min_ms": round(stats["min"], 2),
            "max_ms": round(stats["max"], 2),
        },
        "timestamp": _now(),
    }
