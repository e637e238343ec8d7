"""
FormRelay Backend — Health Check Route
========================================

What:  Liveness/readiness probe for load balancers and container health checks.
How:   Runs SELECT 1 against the database and reports how many Socket.IO
       sessions are registered in the notification directory.

Status levels:
    - healthy:   Database reachable (HTTP 200)
    - unhealthy: Database unreachable (HTTP 503, stop routing traffic)

Live connections are informational only. Zero is normal when no client is
connected and never makes the service unhealthy.
"""

import logging
import time

from fastapi import APIRouter, Response
from sqlalchemy import text

from formrelay import __version__
from formrelay.realtime import notification_directory
from formrelay.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Database connectivity, live socket count and uptime.",
)
async def health_check(response: Response) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    # ── Check Database ────────────────────────────────────────────────────
    try:
        from formrelay.database import engine
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        response.status_code = 503
        logger.warning("Health check: database unreachable: %s", str(e))

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        live_connections=notification_directory.connection_count,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
