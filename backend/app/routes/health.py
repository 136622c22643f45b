"""
NoteMate Backend — Health Check Route
======================================

What:  Liveness probe for Docker and load balancers.
How:   Reports version, uptime, event count and whether the analytics snapshot
       file exists. The snapshot is not a hard dependency: a missing file only
       means no checkpoint has been written yet, so the status stays "healthy"
       and is flagged "degraded" only when events exist but nothing is on disk.
"""

import logging

from fastapi import APIRouter, Request

from app import __version__
from app.schemas.analytics import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(request: Request) -> HealthResponse:
    analytics = request.app.state.analytics
    snapshot_present = analytics.store.exists()
    total_events = analytics.total_events

    status = "healthy"
    if not snapshot_present and total_events >= analytics.checkpoint_interval:
        status = "degraded"
        logger.warning("Health check: %d events recorded but no snapshot at %s",
                       total_events, analytics.store.path)

    return HealthResponse(
        status=status,
        version=__version__,
        analytics_snapshot="present" if snapshot_present else "missing",
        total_events=total_events,
        uptime_seconds=round(analytics.uptime_seconds, 2),
    )
