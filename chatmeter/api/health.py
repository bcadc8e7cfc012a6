"""
Health check endpoints.

Liveness plus an in-process metrics snapshot for monitoring.
"""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from chatmeter import __version__
from chatmeter.core.metrics import metrics
from chatmeter.db import verify_database_connection

router = APIRouter(tags=["health"])


@router.get("/health")
async def healthcheck(request: Request) -> dict[str, Any]:
    """
    Health check endpoint.

    Returns service status, current time, and a snapshot of counters and
    gauges (blocked requests, fallbacks, active streams, ...).
    """
    start_time = getattr(request.app.state, "start_time", None)
    uptime = (datetime.now(UTC) - start_time).total_seconds() if start_time else None
    return {
        "status": "ok",
        "version": __version__,
        "time": datetime.now(UTC).isoformat(),
        "uptime_seconds": uptime,
        "metrics": metrics.snapshot(),
    }


@router.get("/readyz")
async def readiness() -> JSONResponse:
    """Readiness check: the database must answer."""
    checks = {"database": verify_database_connection()}
    ready = all(checks.values())
    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if ready else "not_ready",
            "timestamp": datetime.now(UTC).isoformat(),
            "checks": checks,
        },
    )
