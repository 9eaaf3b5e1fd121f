"""
Notes Summarizer - Health Check Route
=======================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Runs lightweight checks against the database (SELECT 1) and Gemini
       (list models, no tokens consumed).

Status levels:
    healthy:    all dependencies operational (HTTP 200)
    degraded:   Gemini unreachable; history still works (HTTP 200)
    unhealthy:  database unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Request

from notes_summarizer import __version__
from notes_summarizer.responses import success_response
from notes_summarizer.schemas.envelope import SuccessEnvelope
from notes_summarizer.schemas.summary import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=SuccessEnvelope,
    summary="Service health check",
)
async def health_check(request: Request):
    state = request.app.state
    db_status = "connected"
    gemini_status = "available"
    overall = "healthy"

    # ── Database ──────────────────────────────────────────────────────────
    try:
        await state.database.ping()
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", e)

    # ── Gemini ────────────────────────────────────────────────────────────
    if not await state.summarizer.health_check():
        gemini_status = "unavailable"
        if overall == "healthy":
            overall = "degraded"

    health = HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        gemini=gemini_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    return success_response(health, status_code=503 if overall == "unhealthy" else 200)
