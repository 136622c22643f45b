"""
NoteMate Backend — Analytics Aggregate State
=============================================

What:  Pydantic models for the single in-memory analytics aggregate.
Why:   One typed tree replaces a loose dict: defaults live on the fields,
       the snapshot shape is derived from the models, and reload is plain
       validation instead of hand-written key checks.
How:   Python attributes are snake_case; `alias_generator=to_camel` gives the
       on-disk and over-the-wire names (totalRequests, dailyStats, ...).
Who:   Mutated only by EventRecorder, read by InsightReporter, owned by
       AnalyticsService.

Snapshot Shape (abridged):
    {
        "totalRequests": 42,
        "responseTimeStats": {"sum": 1234.0, "count": 7, "average": 176.3,
                              "min": 50.0, "max": 300.0},
        "dailyStats": {
            "2026-10-19": {"requests": 21, "successRate": "50.00",
                           "uniqueUsers": ["10.0.0.1", "10.0.0.2"],
                           "uniqueUserCount": 2, ...}
        },
        "hourlyStats": {"2026-10-19T14": {"requests": 3, ...}},
        ...
    }

Key formats:
    Day:  ISO local date "YYYY-MM-DD" (sorts chronologically as a string)
    Hour: "YYYY-MM-DDTHH"
"""

import math
from datetime import datetime
from typing import Any, Dict, List, Set

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator
from pydantic.alias_generators import to_camel

HTTP_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH")
CONTENT_KINDS = ("text", "audio", "video", "image", "ppt", "notes")


def local_now() -> datetime:
    """Current local time as an aware datetime (default clock)."""
    return datetime.now().astimezone()


def day_key(moment: datetime) -> str:
    return moment.date().isoformat()


def hour_key(moment: datetime) -> str:
    return f"{day_key(moment)}T{moment.hour:02d}"


def hour_of(key: str) -> int:
    """Extracts the hour-of-day from an hourly bucket key."""
    return int(key.rsplit("T", 1)[1])


def _preset(keys) -> Dict[str, int]:
    return {key: 0 for key in keys}


class CamelModel(BaseModel):
    """Base for every analytics model: camelCase aliases, snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ResponseTimeStats(CamelModel):
    """
    Running latency aggregate in milliseconds.

    `min` is +inf until the first sample arrives. JSON has no infinity, so the
    snapshot stores null and reload maps null back to +inf.
    """

    sum: float = 0.0
    count: int = 0
    average: float = 0.0
    min: float = math.inf
    max: float = 0.0

    @field_validator("min", mode="before")
    @classmethod
    def _none_means_no_samples(cls, v: Any) -> Any:
        return math.inf if v is None else v

    @field_serializer("min", when_used="json")
    def _serialize_min(self, v: float):
        return None if math.isinf(v) else v

    def observe(self, sample: float) -> None:
        self.sum += sample
        self.count += 1
        self.average = self.sum / self.count
        self.min = min(self.min, sample)
        self.max = max(self.max, sample)


class EndpointLatency(CamelModel):
    """Per-endpoint latency aggregate (no minimum tracked)."""

    sum: float = 0.0
    count: int = 0
    average: float = 0.0
    max: float = 0.0

    def observe(self, sample: float) -> None:
        self.sum += sample
        self.count += 1
        self.average = self.sum / self.count
        self.max = max(self.max, sample)


class EndpointErrorRate(CamelModel):
    total: int = 0
    errors: int = 0
    rate: float = 0.0


class PerformanceMetrics(CamelModel):
    slowest_endpoints: Dict[str, EndpointLatency] = Field(default_factory=dict)
    error_rates: Dict[str, EndpointErrorRate] = Field(default_factory=dict)


class HourBucket(CamelModel):
    requests: int = 0
    errors: int = 0
    avg_response_time: float = 0.0
    # Running sum/count behind avg_response_time
    response_time_sum: float = 0.0
    response_time_count: int = 0

    def observe_latency(self, sample: float) -> None:
        self.response_time_sum += sample
        self.response_time_count += 1
        self.avg_response_time = self.response_time_sum / self.response_time_count


class DayBucket(HourBucket):
    """
    Per-day counters.

    Unique users:
        `unique_users` is the day's private set of client IPs; only its
        cardinality (`unique_user_count`) is meant for consumers. Snapshots
        store the set as a sorted list so reload can keep deduplicating.
        Older snapshots that held a bare number keep that number until the
        next IP-bearing request_start for the day rebuilds the set.
    """

    prints: int = 0
    success_rate: str = "0.00"
    unique_users: Set[str] = Field(default_factory=set)
    unique_user_count: int = 0
    top_endpoints: Dict[str, int] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _collapse_legacy_unique_users(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        raw = data.get("uniqueUsers", data.get("unique_users"))
        # bool is an int subclass; a stray true/false is not a user count
        if isinstance(raw, int) and not isinstance(raw, bool):
            data.pop("unique_users", None)
            data["uniqueUsers"] = []
            data.setdefault("uniqueUserCount", raw)
        elif isinstance(raw, list) and "uniqueUserCount" not in data and "unique_user_count" not in data:
            data["uniqueUserCount"] = len(set(raw))
        return data

    @field_validator("success_rate", mode="before")
    @classmethod
    def _coerce_success_rate(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return f"{v:.2f}"
        return v

    @field_serializer("unique_users", when_used="json")
    def _serialize_unique_users(self, v: Set[str]) -> List[str]:
        return sorted(v)


class SystemInfo(CamelModel):
    start_time: datetime
    uptime: int = 0  # milliseconds since start_time


class AggregateState(CamelModel):
    """
    The whole analytics aggregate.

    Invariants:
        - Counters only ever increase; no code path decrements them.
        - response_time_stats.min <= every sample <= response_time_stats.max
          once count > 0.
        - sum(requests_by_type) need not equal total_requests: events without
          a content kind still count as requests.
    """

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    requests_by_endpoint: Dict[str, int] = Field(default_factory=dict)
    requests_by_method: Dict[str, int] = Field(default_factory=lambda: _preset(HTTP_METHODS))
    requests_by_type: Dict[str, int] = Field(default_factory=lambda: _preset(CONTENT_KINDS))
    response_time_stats: ResponseTimeStats = Field(default_factory=ResponseTimeStats)
    prints_by_type: Dict[str, int] = Field(default_factory=lambda: _preset(CONTENT_KINDS))
    prints_total: int = 0
    daily_stats: Dict[str, DayBucket] = Field(default_factory=dict)
    hourly_stats: Dict[str, HourBucket] = Field(default_factory=dict)
    user_agents: Dict[str, int] = Field(default_factory=dict)
    ip_addresses: Dict[str, int] = Field(default_factory=dict)
    errors_by_type: Dict[str, int] = Field(default_factory=dict)
    popular_features: Dict[str, int] = Field(default_factory=dict)
    performance_metrics: PerformanceMetrics = Field(default_factory=PerformanceMetrics)
    last_updated: datetime = Field(default_factory=local_now)
    system_info: SystemInfo = Field(default_factory=lambda: SystemInfo(start_time=local_now()))

    @classmethod
    def fresh(cls, started_at: datetime) -> "AggregateState":
        """Zeroed aggregate for a process that started at `started_at`."""
        return cls(last_updated=started_at, system_info=SystemInfo(start_time=started_at))

    @classmethod
    def from_snapshot(cls, snapshot: Dict[str, Any], started_at: datetime) -> "AggregateState":
        """
        Rebuild the aggregate from a loaded snapshot.

        Top-level keys of the snapshot replace the defaults wholesale (shallow
        merge), so a field added after the snapshot was written still gets its
        default. The start time always belongs to the current process.

        Raises:
            pydantic.ValidationError: The snapshot has an unexpected shape.
        """
        merged = {**cls.fresh(started_at).to_snapshot(), **snapshot}
        state = cls.model_validate(merged)
        state.system_info.start_time = started_at
        return state

    def to_snapshot(self) -> Dict[str, Any]:
        """JSON-ready dict with camelCase keys, as written to disk."""
        return self.model_dump(mode="json", by_alias=True)

