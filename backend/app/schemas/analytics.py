"""
NoteMate Backend — Analytics Request/Response Schemas
======================================================

What:  Pydantic models for the read-only analytics views and the admin API.
Why:   The reporter returns typed objects; FastAPI serializes them with
       camelCase aliases (the names the admin dashboard reads) and documents
       them in OpenAPI.
Who:   Built by InsightReporter, returned by routes/admin.py.

Percentages:
    Rates are rendered as fixed-precision strings ("50.00") once there is
    data, and as the integer 0 before the first request. Clients treat both
    as numbers.
"""

from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

from pydantic import BaseModel, Field

from app.models.analytics import CamelModel

Percentage = Union[str, int]

T = TypeVar("T")


# ══════════════════════════════════════════════════════════════════════════
# Dashboard
# ══════════════════════════════════════════════════════════════════════════


class Overview(CamelModel):
    total_requests: int
    successful_requests: int
    failed_requests: int
    success_rate: Percentage
    average_response_time: int
    total_prints: int
    uptime: int = Field(description="Milliseconds since process start, as of the last event")


class DailyPoint(CamelModel):
    date: str
    requests: int = 0
    errors: int = 0
    prints: int = 0


class HourlyPoint(CamelModel):
    hour: int
    requests: int = 0
    errors: int = 0


class TypeCount(CamelModel):
    type: str
    count: int


class MethodCount(CamelModel):
    method: str
    count: int


class Charts(CamelModel):
    last7_days: List[DailyPoint]
    last24_hours: List[HourlyPoint]
    requests_by_type: List[TypeCount]
    requests_by_method: List[MethodCount]
    prints_by_type: List[TypeCount]
    errors_by_type: List[TypeCount]


class EndpointCount(CamelModel):
    endpoint: str
    count: int


class EndpointLatencyView(CamelModel):
    endpoint: str
    average_time: int


class AgentCount(CamelModel):
    agent: str
    count: int


class FeatureCount(CamelModel):
    feature: str
    count: int


class Insights(CamelModel):
    top_endpoints: List[EndpointCount]
    slowest_endpoints: List[EndpointLatencyView]
    top_user_agents: List[AgentCount]
    popular_features: List[FeatureCount]


class Dashboard(CamelModel):
    overview: Overview
    charts: Charts
    insights: Insights


# ══════════════════════════════════════════════════════════════════════════
# User Activity
# ══════════════════════════════════════════════════════════════════════════


class ActivityOverview(CamelModel):
    unique_users: int
    total_sessions: int = Field(
        default=0, description="Always 0: sessions are not tracked. Kept for client compatibility."
    )
    average_requests_per_user: int


class HourlyActivity(CamelModel):
    period: int
    requests: int = 0
    errors: int = 0


class DailyActivity(CamelModel):
    period: str
    requests: int = 0
    errors: int = 0
    prints: int = 0


class UserAgentCount(CamelModel):
    user_agent: str
    count: int


class UserActivity(CamelModel):
    overview: ActivityOverview
    activity: List[Union[HourlyActivity, DailyActivity]]
    top_user_agents: List[UserAgentCount]


# ══════════════════════════════════════════════════════════════════════════
# Business Insights
# ══════════════════════════════════════════════════════════════════════════


class MostPopularFeature(CamelModel):
    feature: str
    usage: int
    percentage: str


class FeatureAdoption(CamelModel):
    total_usage: int
    most_popular: Optional[MostPopularFeature] = None
    breakdown: List[TypeCount]


class UserEngagement(CamelModel):
    print_rate: Percentage
    error_rate: Percentage
    average_response_time: int


class Recommendation(CamelModel):
    type: str
    priority: str
    title: str
    description: str
    action: str


class PopularTime(CamelModel):
    hour: int
    count: int


class Trends(CamelModel):
    daily_growth: Percentage
    popular_times: List[PopularTime]


class BusinessInsights(CamelModel):
    feature_adoption: FeatureAdoption
    user_engagement: UserEngagement
    recommendations: List[Recommendation]
    trends: Trends


# ══════════════════════════════════════════════════════════════════════════
# System Health
# ══════════════════════════════════════════════════════════════════════════


class UptimeView(CamelModel):
    seconds: int
    formatted: str


class RequestTotals(CamelModel):
    total: int
    successful: int
    failed: int
    success_rate: Percentage


class LatencySummary(CamelModel):
    average_response_time: int
    min_response_time: float
    max_response_time: float


class SystemHealth(CamelModel):
    status: str
    uptime: UptimeView
    requests: RequestTotals
    performance: LatencySummary


# ══════════════════════════════════════════════════════════════════════════
# API Envelopes
# ══════════════════════════════════════════════════════════════════════════


class DataResponse(BaseModel, Generic[T]):
    """Standard success envelope used by every admin route."""

    success: bool = True
    data: T
    timestamp: datetime


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class TrackEventRequest(CamelModel):
    """
    Body of POST /api/admin/track.

    `event_type` is optional at the schema level so a missing value is
    reported as a 400 validation_error rather than FastAPI's generic 422.
    """

    event_type: Optional[str] = Field(default=None, description="request_start, print, or any custom name")
    details: Dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status")
    version: str = Field(description="Application version")
    analytics_snapshot: str = Field(description="Snapshot file: present or missing")
    total_events: int = Field(description="Events recorded so far (including restored ones)")
    uptime_seconds: float = Field(description="Seconds since service started")
