"""
SpendTrack Backend — Health Check Routes
==========================================

What:  GET / (banner) and GET /health (database check for load balancers).
How:   /health runs SELECT 1 on the engine; an unreachable database makes
       the service "unhealthy" and the endpoint answer 503.
"""

import logging
import time

from fastapi import APIRouter, Response
from sqlalchemy import text

from spendtrack import __version__
from spendtrack.database import engine
from spendtrack.schemas.common import HealthResponse, RootResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get("/", response_model=RootResponse, summary="API banner")
async def root() -> RootResponse:
    return RootResponse(
        message="spending-tracker backend API is working correctly and you can see it here!"
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(response: Response) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
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
        uptime_seconds=round(time.time() - _start_time, 2),
    )
