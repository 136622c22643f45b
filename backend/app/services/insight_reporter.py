"""
NoteMate Backend — Insight Reporter
====================================

What:  Read-only views computed from an AggregateState on demand.
Why:   The admin dashboard needs trends, rankings and recommendations, not raw
       counters. Computing them per call keeps the aggregate the single source
       of truth (no cache to invalidate).
How:   Every method takes the state as an argument and returns a schema
       object from app.schemas.analytics. Nothing here mutates the state.
Who:   Called by AnalyticsService under its lock.

Ranking rules:
    All rankings sort by count descending with Python's stable sort, so ties
    keep the order in which keys were first recorded.

Recommendation rules (evaluated in order, all that apply are returned):
    1. error rate > 5%              → high   / performance
    2. average latency > 5000 ms    → medium / performance
    3. any content kind < 10% usage → low    / business (one entry, all kinds)
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from app.models.analytics import AggregateState, day_key, hour_key, hour_of, local_now
from app.schemas.analytics import (
    ActivityOverview,
    AgentCount,
    BusinessInsights,
    Charts,
    Dashboard,
    DailyActivity,
    DailyPoint,
    EndpointCount,
    EndpointLatencyView,
    FeatureAdoption,
    FeatureCount,
    HourlyActivity,
    HourlyPoint,
    Insights,
    LatencySummary,
    MethodCount,
    MostPopularFeature,
    Overview,
    Percentage,
    PopularTime,
    Recommendation,
    RequestTotals,
    SystemHealth,
    Trends,
    TypeCount,
    UptimeView,
    UserActivity,
    UserAgentCount,
    UserEngagement,
)

logger = logging.getLogger(__name__)

ERROR_RATE_THRESHOLD = 5.0  # percent
SLOW_RESPONSE_THRESHOLD_MS = 5000
UNDERUSED_SHARE = 0.1


def round_half_up(value: float) -> int:
    """Rounds .5 away from zero for non-negative values (2.5 → 3, not 2)."""
    return int(math.floor(value + 0.5))


def percentage(part: float, whole: float, digits: int = 2) -> Percentage:
    """`part/whole` as a fixed-precision percent string, or 0 when `whole` is 0."""
    if not whole:
        return 0
    return f"{part / whole * 100:.{digits}f}"


def ranked(counter: Dict[str, int], limit: Optional[int] = None) -> List[Tuple[str, int]]:
    items = sorted(counter.items(), key=lambda kv: kv[1], reverse=True)
    return items if limit is None else items[:limit]


def truncate(text: str, width: int, always_mark: bool = False) -> str:
    if always_mark or len(text) > width:
        return text[:width] + "..."
    return text


def format_uptime(seconds: float) -> str:
    """Formats seconds as "{days}d {hours}h {minutes}m"."""
    days = int(seconds // 86400)
    hours = int((seconds % 86400) // 3600)
    minutes = int((seconds % 3600) // 60)
    return f"{days}d {hours}h {minutes}m"


class InsightReporter:
    """
    Derived views over an AggregateState.

    Args:
        clock: Returns the current aware datetime. The trailing 7-day and
               24-hour windows end at its local day/hour.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or local_now

    # ── Time series ───────────────────────────────────────────────────────

    def _trailing_days(self, count: int = 7) -> Iterable[str]:
        now = self._clock()
        for offset in range(count - 1, -1, -1):
            yield day_key(now - timedelta(days=offset))

    def _trailing_hours(self, count: int = 24) -> Iterable[datetime]:
        now = self._clock()
        for offset in range(count - 1, -1, -1):
            yield now - timedelta(hours=offset)

    def last_7_days(self, state: AggregateState) -> List[DailyPoint]:
        points = []
        for key in self._trailing_days():
            bucket = state.daily_stats.get(key)
            if bucket is None:
                points.append(DailyPoint(date=key))
            else:
                points.append(DailyPoint(
                    date=key, requests=bucket.requests, errors=bucket.errors, prints=bucket.prints,
                ))
        return points

    def last_24_hours(self, state: AggregateState) -> List[HourlyPoint]:
        points = []
        for moment in self._trailing_hours():
            bucket = state.hourly_stats.get(hour_key(moment))
            if bucket is None:
                points.append(HourlyPoint(hour=moment.hour))
            else:
                points.append(HourlyPoint(hour=moment.hour, requests=bucket.requests, errors=bucket.errors))
        return points

    # ── Dashboard ─────────────────────────────────────────────────────────

    def dashboard(self, state: AggregateState) -> Dashboard:
        """Overview counters, chart series and top-N rankings in one payload."""
        overview = Overview(
            total_requests=state.total_requests,
            successful_requests=state.successful_requests,
            failed_requests=state.failed_requests,
            success_rate=percentage(state.successful_requests, state.total_requests),
            average_response_time=round_half_up(state.response_time_stats.average),
            total_prints=state.prints_total,
            uptime=state.system_info.uptime,
        )

        charts = Charts(
            last7_days=self.last_7_days(state),
            last24_hours=self.last_24_hours(state),
            requests_by_type=self._type_counts(state.requests_by_type),
            requests_by_method=[
                MethodCount(method=method, count=count)
                for method, count in state.requests_by_method.items()
            ],
            prints_by_type=self._type_counts(state.prints_by_type),
            errors_by_type=self._type_counts(state.errors_by_type),
        )

        slowest = sorted(
            state.performance_metrics.slowest_endpoints.items(),
            key=lambda kv: kv[1].average,
            reverse=True,
        )[:5]

        insights = Insights(
            top_endpoints=[
                EndpointCount(endpoint=endpoint, count=count)
                for endpoint, count in ranked(state.requests_by_endpoint, 10)
            ],
            slowest_endpoints=[
                EndpointLatencyView(endpoint=endpoint, average_time=round_half_up(stats.average))
                for endpoint, stats in slowest
            ],
            top_user_agents=[
                AgentCount(agent=truncate(agent, 50, always_mark=True), count=count)
                for agent, count in ranked(state.user_agents, 5)
            ],
            popular_features=[
                FeatureCount(feature=feature, count=count)
                for feature, count in ranked(state.popular_features)
            ],
        )

        return Dashboard(overview=overview, charts=charts, insights=insights)

    @staticmethod
    def _type_counts(counter: Dict[str, int]) -> List[TypeCount]:
        return [TypeCount(type=kind, count=count) for kind, count in counter.items()]

    # ── User activity ─────────────────────────────────────────────────────

    def user_activity(self, state: AggregateState, timeframe: str = "7d") -> UserActivity:
        """
        Visitor overview plus an activity series.

        timeframe:
            "24h"  → 24 hourly points (period = hour of day)
            other  → 7 daily points (period = day key)
        """
        unique_ips = len(state.ip_addresses)

        if timeframe == "24h":
            activity = [
                HourlyActivity(period=point.hour, requests=point.requests, errors=point.errors)
                for point in self.last_24_hours(state)
            ]
        else:
            activity = [
                DailyActivity(period=point.date, requests=point.requests,
                              errors=point.errors, prints=point.prints)
                for point in self.last_7_days(state)
            ]

        return UserActivity(
            overview=ActivityOverview(
                unique_users=unique_ips,
                total_sessions=0,
                average_requests_per_user=(
                    round_half_up(state.total_requests / unique_ips) if unique_ips else 0
                ),
            ),
            activity=activity,
            top_user_agents=[
                UserAgentCount(user_agent=truncate(agent, 80), count=count)
                for agent, count in ranked(state.user_agents, 10)
            ],
        )

    # ── Business insights ─────────────────────────────────────────────────

    def business_insights(self, state: AggregateState) -> BusinessInsights:
        total_usage = sum(state.requests_by_type.values())
        most_popular = None
        if total_usage:
            feature, usage = ranked(state.requests_by_type, 1)[0]
            most_popular = MostPopularFeature(
                feature=feature, usage=usage, percentage=f"{usage / total_usage * 100:.1f}",
            )

        return BusinessInsights(
            feature_adoption=FeatureAdoption(
                total_usage=total_usage,
                most_popular=most_popular,
                breakdown=self._type_counts(state.requests_by_type),
            ),
            user_engagement=UserEngagement(
                print_rate=percentage(state.prints_total, state.total_requests),
                error_rate=percentage(state.failed_requests, state.total_requests),
                average_response_time=round_half_up(state.response_time_stats.average),
            ),
            recommendations=self.recommendations(state),
            trends=Trends(
                daily_growth=self.daily_growth(state),
                popular_times=self.popular_times(state),
            ),
        )

    def recommendations(self, state: AggregateState) -> List[Recommendation]:
        recommendations: List[Recommendation] = []

        error_rate = (
            state.failed_requests / state.total_requests * 100 if state.total_requests else 0.0
        )
        if error_rate > ERROR_RATE_THRESHOLD:
            recommendations.append(Recommendation(
                type="performance",
                priority="high",
                title="High Error Rate Detected",
                description=(
                    f"Current error rate is {error_rate:.1f}%. "
                    "Consider investigating and fixing common errors."
                ),
                action="Review error logs and improve error handling",
            ))

        avg_response_time = state.response_time_stats.average
        if avg_response_time > SLOW_RESPONSE_THRESHOLD_MS:
            recommendations.append(Recommendation(
                type="performance",
                priority="medium",
                title="Slow Response Times",
                description=(
                    f"Average response time is {round_half_up(avg_response_time)}ms. "
                    "Consider optimizing performance."
                ),
                action="Optimize API endpoints and consider caching",
            ))

        total_usage = sum(state.requests_by_type.values())
        underused = [
            feature for feature, count in state.requests_by_type.items()
            if count < total_usage * UNDERUSED_SHARE
        ]
        if underused:
            recommendations.append(Recommendation(
                type="business",
                priority="low",
                title="Underutilized Features",
                description=(
                    f"Features like {', '.join(underused)} have low usage. "
                    "Consider promoting them."
                ),
                action="Improve feature visibility and user education",
            ))

        return recommendations

    @staticmethod
    def daily_growth(state: AggregateState) -> Percentage:
        """Request growth from the second-latest to the latest recorded day."""
        days = sorted(state.daily_stats)
        if len(days) < 2:
            return 0

        recent = state.daily_stats[days[-1]].requests
        previous = state.daily_stats[days[-2]].requests
        if previous == 0:
            return 100 if recent > 0 else 0
        return f"{(recent - previous) / previous * 100:.1f}"

    @staticmethod
    def popular_times(state: AggregateState, limit: int = 3) -> List[PopularTime]:
        """Hours of day ranked by requests summed over every recorded day."""
        by_hour: Dict[int, int] = {}
        for key, bucket in state.hourly_stats.items():
            hour = hour_of(key)
            by_hour[hour] = by_hour.get(hour, 0) + bucket.requests

        ordered = sorted(by_hour.items(), key=lambda kv: kv[1], reverse=True)[:limit]
        return [PopularTime(hour=hour, count=count) for hour, count in ordered]

    # ── System health ─────────────────────────────────────────────────────

    def system_health(self, state: AggregateState, process_uptime: float) -> SystemHealth:
        stats = state.response_time_stats
        return SystemHealth(
            status="healthy",
            uptime=UptimeView(seconds=int(process_uptime), formatted=format_uptime(process_uptime)),
            requests=RequestTotals(
                total=state.total_requests,
                successful=state.successful_requests,
                failed=state.failed_requests,
                success_rate=percentage(state.successful_requests, state.total_requests),
            ),
            performance=LatencySummary(
                average_response_time=round_half_up(stats.average),
                min_response_time=0 if math.isinf(stats.min) else stats.min,
                max_response_time=stats.max,
            ),
        )
