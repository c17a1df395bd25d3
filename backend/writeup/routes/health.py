"""
WriteUp Backend: Health Check Route
===================================

What:  GET /health for the desktop shell's startup check and monitoring.
How:   Checks the database with SELECT 1 and reports each provider's setup
       status. Providers are not called: a health check must not spend quota.

Status levels:
    - healthy:   database reachable and at least one provider set up (HTTP 200)
    - degraded:  database reachable but no provider set up yet (HTTP 200)
    - unhealthy: database unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from writeup import __version__
from writeup.database import engine
from writeup.schemas.health import HealthResponse
from writeup.services.registry import provider_registry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Track when the service started for uptime reporting
_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description=(
        "Returns the health of the backend and its database, plus which AI "
        "providers are set up."
    ),
)
async def health_check():
    db_status = "connected"
    overall = "healthy"
    providers = []

    # ── Check Database ────────────────────────────────────────────────────
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    # ── Provider setup (needs the database for descriptors) ───────────────
    if db_status == "connected":
        try:
            providers = await provider_registry.get_statuses()
            if not any(p.configured for p in providers):
                overall = "degraded"
        except Exception as e:
            overall = "degraded"
            logger.warning("Health check: could not read provider config: %s", str(e))

    body = HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        providers=providers,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    if overall == "unhealthy":
        return JSONResponse(status_code=503, content=body.model_dump(by_alias=True, mode="json"))
    return body
