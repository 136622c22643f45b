"""
NoteMate Backend — Admin Analytics Routes
==========================================

What:  Read-only analytics views for the admin dashboard, plus custom event
       tracking.
How:   Thin handlers: each one calls a single AnalyticsService accessor and
       wraps the result in the {"success", "data", "timestamp"} envelope.
Who:   Called by the admin front-end with an X-Admin-Key header.

Route Inventory:
    GET  /api/admin/analytics             dashboard (overview, charts, insights)
    GET  /api/admin/analytics/raw         full aggregate
    GET  /api/admin/system/health         uptime, totals, latency
    GET  /api/admin/users/activity        visitors + activity series
    GET  /api/admin/insights/business     adoption, engagement, recommendations
    POST /api/admin/track                 record a custom event
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query, Request

from app.auth import require_admin
from app.exceptions import ValidationError
from app.models.analytics import AggregateState
from app.schemas.analytics import (
    BusinessInsights,
    Dashboard,
    DataResponse,
    ErrorResponse,
    MessageResponse,
    SystemHealth,
    TrackEventRequest,
    UserActivity,
)
from app.services.analytics_service import AnalyticsService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/admin",
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
    responses={401: {"description": "Missing or invalid admin key", "model": ErrorResponse}},
)


def get_analytics(request: Request) -> AnalyticsService:
    """Dependency: the analytics engine attached by create_app()."""
    return request.app.state.analytics


def _now() -> datetime:
    return datetime.now(timezone.utc)


@router.get(
    "/analytics",
    response_model=DataResponse[Dashboard],
    summary="Analytics dashboard",
)
async def get_dashboard(analytics: AnalyticsService = Depends(get_analytics)):
    return DataResponse[Dashboard](data=analytics.get_dashboard(), timestamp=_now())


@router.get(
    "/analytics/raw",
    response_model=DataResponse[AggregateState],
    summary="Raw analytics aggregate (for advanced users)",
)
async def get_raw_analytics(analytics: AnalyticsService = Depends(get_analytics)):
    return DataResponse[AggregateState](data=analytics.get_raw_state(), timestamp=_now())


@router.get(
    "/system/health",
    response_model=DataResponse[SystemHealth],
    summary="Process uptime, request totals and latency",
)
async def get_system_health(analytics: AnalyticsService = Depends(get_analytics)):
    return DataResponse[SystemHealth](data=analytics.get_system_health(), timestamp=_now())


@router.get(
    "/users/activity",
    response_model=DataResponse[UserActivity],
    summary="Visitor overview and activity series",
)
async def get_user_activity(
    timeframe: str = Query(
        default="7d",
        description="'24h' for hourly points; anything else gives the 7-day daily view",
    ),
    analytics: AnalyticsService = Depends(get_analytics),
):
    return DataResponse[UserActivity](data=analytics.get_user_activity(timeframe), timestamp=_now())


@router.get(
    "/insights/business",
    response_model=DataResponse[BusinessInsights],
    summary="Feature adoption, engagement, recommendations and trends",
)
async def get_business_insights(analytics: AnalyticsService = Depends(get_analytics)):
    return DataResponse[BusinessInsights](data=analytics.get_business_insights(), timestamp=_now())


@router.post(
    "/track",
    response_model=MessageResponse,
    responses={400: {"description": "Event type missing", "model": ErrorResponse}},
    summary="Record a custom analytics event",
)
async def track_event(
    body: TrackEventRequest,
    analytics: AnalyticsService = Depends(get_analytics),
) -> MessageResponse:
    if not body.event_type or not body.event_type.strip():
        raise ValidationError(message="Event type is required", field="eventType")

    await analytics.record_event(body.event_type.strip(), body.details)
    logger.info("Tracked custom event %s", body.event_type.strip())
    return MessageResponse(message="Event tracked successfully")
