"""
NoteMate Backend — Event Recorder
==================================

What:  Applies one analytics event to an AggregateState.
Why:   Keeps every counter rule in one place, free of locking and I/O, so it can
       be tested against a bare state object.
How:   `apply(state, event)` does the per-call bookkeeping, then dispatches on
       the event variant. The caller (AnalyticsService) owns the state and the
       lock and decides when to checkpoint.

Per-event rules:
    request_start    day/hour requests, endpoint, method, user agent, IP,
                     day's unique-IP set
    request_success  global successes, latency aggregates, content kind
    request_error    global/day/hour errors, error kind, endpoint error rate
    print            global/day prints, prints by content kind
    anything else    only the per-call bookkeeping

Per-call bookkeeping (every event, whatever its type):
    - totalRequests += 1, lastUpdated, systemInfo.uptime
    - today's and this hour's buckets created on first use
    - today's successRate = GLOBAL successes / GLOBAL total, two decimals.
      The day's own success/error counts are deliberately not used here.
    - today's uniqueUserCount = size of today's unique-IP set
"""

import logging
from datetime import datetime
from typing import Callable, Dict, Optional

from app.models.analytics import (
    AggregateState,
    DayBucket,
    EndpointErrorRate,
    EndpointLatency,
    HourBucket,
    day_key,
    hour_key,
    local_now,
)
from app.models.events import (
    AnalyticsEvent,
    PrintEvent,
    RequestErrorEvent,
    RequestStartEvent,
    RequestSuccessEvent,
)

logger = logging.getLogger(__name__)


def _bump(counter: Dict[str, int], key: str) -> None:
    counter[key] = counter.get(key, 0) + 1


class EventRecorder:
    """
    Stateless rule set over an AggregateState passed in by the caller.

    Args:
        clock: Returns the current aware datetime. Bucket keys use its local
               date and hour. Injected by tests to pin "today".
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or local_now

    def apply(self, state: AggregateState, event: AnalyticsEvent) -> None:
        """Mutates `state` in place. Not thread-safe; callers hold the lock."""
        now = self._clock()

        state.total_requests += 1
        state.last_updated = now
        state.system_info.uptime = int(
            (now - state.system_info.start_time).total_seconds() * 1000
        )

        day = state.daily_stats.setdefault(day_key(now), DayBucket())
        hour = state.hourly_stats.setdefault(hour_key(now), HourBucket())

        if isinstance(event, RequestStartEvent):
            self._request_start(state, day, hour, event)
        elif isinstance(event, RequestSuccessEvent):
            self._request_success(state, day, hour, event)
        elif isinstance(event, RequestErrorEvent):
            self._request_error(state, day, hour, event)
        elif isinstance(event, PrintEvent):
            self._print(state, day, event)
        else:
            logger.debug("Recorded custom analytics event %s", getattr(event, "event_type", "?"))

        day.success_rate = f"{state.successful_requests / state.total_requests * 100:.2f}"
        if day.unique_users:
            day.unique_user_count = len(day.unique_users)

    # ── Event handlers ────────────────────────────────────────────────────

    def _request_start(
        self, state: AggregateState, day: DayBucket, hour: HourBucket, event: RequestStartEvent
    ) -> None:
        day.requests += 1
        hour.requests += 1

        if event.endpoint:
            _bump(state.requests_by_endpoint, event.endpoint)
            _bump(day.top_endpoints, event.endpoint)
        if event.method:
            _bump(state.requests_by_method, event.method)
        if event.user_agent:
            _bump(state.user_agents, event.user_agent)
        if event.ip:
            _bump(state.ip_addresses, event.ip)
            day.unique_users.add(event.ip)

    def _request_success(
        self, state: AggregateState, day: DayBucket, hour: HourBucket, event: RequestSuccessEvent
    ) -> None:
        state.successful_requests += 1

        if event.response_time is not None:
            state.response_time_stats.observe(event.response_time)
            day.observe_latency(event.response_time)
            hour.observe_latency(event.response_time)
            if event.endpoint:
                state.performance_metrics.slowest_endpoints.setdefault(
                    event.endpoint, EndpointLatency()
                ).observe(event.response_time)

        if event.type:
            _bump(state.requests_by_type, event.type)
            _bump(state.popular_features, event.type)

    def _request_error(
        self, state: AggregateState, day: DayBucket, hour: HourBucket, event: RequestErrorEvent
    ) -> None:
        state.failed_requests += 1
        day.errors += 1
        hour.errors += 1

        if event.error_type:
            _bump(state.errors_by_type, event.error_type)

        if event.endpoint:
            # Only errors are observed per endpoint, so the rate climbs to 100%
            # for any endpoint that has failed at least once.
            rate = state.performance_metrics.error_rates.setdefault(
                event.endpoint, EndpointErrorRate()
            )
            rate.errors += 1
            rate.total += 1
            rate.rate = rate.errors / rate.total * 100

    def _print(self, state: AggregateState, day: DayBucket, event: PrintEvent) -> None:
        state.prints_total += 1
        day.prints += 1

        if event.type:
            _bump(state.prints_by_type, event.type)
