"""
NoteMate Backend — Analytics Service (State Owner)
===================================================

What:  Owns the process-wide AggregateState and exposes the analytics contract:
       record_event() plus the read accessors used by the admin routes.
Why:   One explicit handle instead of a module-level dict: the state, its lock,
       the checkpoint policy and the snapshot store travel together and can be
       replaced wholesale in tests.
How:   Composes EventRecorder (mutations), InsightReporter (views) and
       SnapshotStore (disk), passing the state to the first two by reference.

Lifecycle:
    init → load() → serve (record_event / get_*) → periodic checkpoint → shutdown()

Concurrency:
    FastAPI runs async handlers on the event loop and sync dependencies in a
    threadpool, so every mutation and every read holds one RLock. Checkpoints
    copy the state to a JSON-ready dict under the lock, release it, then write
    to disk asynchronously with a timeout. A slow disk never blocks the next
    event from being recorded.

    Writes go through one asyncio.Lock in the order they were taken, and a
    snapshot older than the last one on disk (by totalRequests) is dropped,
    so overlapping checkpoints or a save() racing one can never roll the
    file back.

Failure semantics:
    record_event() never raises. Persistence failures (I/O errors, timeouts)
    are logged and the in-memory state carries on; the next checkpoint tries
    again. A missing snapshot at startup creates a fresh one; a corrupt one is
    logged and ignored.
"""

import asyncio
import logging
import threading
import time
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional

from pydantic import ValidationError as SchemaValidationError

from app.config import settings
from app.exceptions import SnapshotCorruptError, SnapshotStorageError
from app.models.analytics import AggregateState, local_now
from app.models.events import parse_event
from app.schemas.analytics import BusinessInsights, Dashboard, SystemHealth, UserActivity
from app.services.event_recorder import EventRecorder
from app.services.insight_reporter import InsightReporter
from app.services.snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)


class AnalyticsService:
    """
    Analytics engine for one process.

    Args:
        store: Where checkpoints go. Defaults to the configured snapshot file.
        checkpoint_interval: Persist when total_requests is a multiple of this.
        write_timeout: Seconds a single checkpoint write may take.
        clock: Returns the current aware datetime (injected by tests).
    """

    def __init__(
        self,
        store: Optional[SnapshotStore] = None,
        checkpoint_interval: Optional[int] = None,
        write_timeout: Optional[float] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store or SnapshotStore()
        self.checkpoint_interval = checkpoint_interval or settings.analytics_checkpoint_interval
        self.write_timeout = write_timeout or settings.snapshot_write_timeout
        self._clock = clock or local_now
        self._lock = threading.RLock()
        # Serializes disk writes; checkpoints older than the last one written are dropped
        self._write_lock = asyncio.Lock()
        self._last_written = -1
        self._started_at = self._clock()
        self._started_monotonic = time.monotonic()

        self.state = AggregateState.fresh(self._started_at)
        self.recorder = EventRecorder(clock=self._clock)
        self.reporter = InsightReporter(clock=self._clock)

    # ── Lifecycle ─────────────────────────────────────────────────────────

    async def load(self) -> None:
        """
        Restore the last checkpoint over the in-memory defaults.

        Missing file → write an empty snapshot (first run).
        Unreadable or malformed file → log, keep defaults, no retry.
        """
        try:
            snapshot = await self.store.load()
        except (SnapshotCorruptError, SnapshotStorageError) as e:
            logger.error("Error loading analytics data: %s | Context: %s", e.message, e.context)
            return

        if snapshot is None:
            logger.info("Creating new analytics data file at %s", self.store.path)
            await self.save()
            return

        try:
            restored = AggregateState.from_snapshot(snapshot, self._started_at)
        except SchemaValidationError as e:
            logger.error(
                "Analytics snapshot %s has an unexpected shape, keeping defaults: %d error(s)",
                self.store.path,
                e.error_count(),
            )
            return

        with self._lock:
            self.state = restored
        logger.info(
            "Analytics data loaded: %d events, %d day(s) of history",
            restored.total_requests,
            len(restored.daily_stats),
        )

    async def save(self) -> bool:
        """Write a checkpoint now. Returns False if it failed (already logged)."""
        with self._lock:
            snapshot = self.state.to_snapshot()
        return await self._write(snapshot)

    async def shutdown(self) -> None:
        """Best-effort final checkpoint so the last partial interval is kept."""
        if await self.save():
            logger.info("Final analytics snapshot saved")

    # ── Recording ─────────────────────────────────────────────────────────

    async def record_event(self, event_type: str, details: Optional[Mapping[str, Any]] = None) -> None:
        """
        Record one analytics event. Fire-and-forget: never raises.

        Args:
            event_type: request_start, request_success, request_error, print,
                        or any custom name (counted, not interpreted).
            details:    Optional fields for the event type; unknown keys ignored.
        """
        snapshot: Optional[Dict[str, Any]] = None
        try:
            event = parse_event(event_type, details)
            with self._lock:
                self.recorder.apply(self.state, event)
                if self.state.total_requests % self.checkpoint_interval == 0:
                    snapshot = self.state.to_snapshot()
        except Exception as e:
            logger.error("Failed to record analytics event %r: %s", event_type, e, exc_info=True)
            return

        if snapshot is not None:
            await self._write(snapshot)

    async def _write(self, snapshot: Dict[str, Any]) -> bool:
        sequence = snapshot.get("totalRequests", 0)
        async with self._write_lock:
            if sequence < self._last_written:
                logger.debug(
                    "Skipping stale analytics checkpoint (%s events, %s already on disk)",
                    sequence,
                    self._last_written,
                )
                return True
            try:
                await asyncio.wait_for(self.store.save(snapshot), timeout=self.write_timeout)
            except asyncio.TimeoutError:
                logger.error(
                    "Error saving analytics data: write to %s exceeded %.1fs",
                    self.store.path,
                    self.write_timeout,
                )
                return False
            except SnapshotStorageError as e:
                logger.error("Error saving analytics data: %s | Context: %s", e.message, e.context)
                return False
            self._last_written = sequence
        logger.debug("Analytics checkpoint written (%s events)", snapshot.get("totalRequests"))
        return True

    # ── Read accessors ────────────────────────────────────────────────────

    def get_raw_state(self) -> AggregateState:
        """Deep copy of the whole aggregate, for advanced consumers."""
        with self._lock:
            return self.state.model_copy(deep=True)

    def get_dashboard(self) -> Dashboard:
        with self._lock:
            return self.reporter.dashboard(self.state)

    def get_user_activity(self, timeframe: str = "7d") -> UserActivity:
        with self._lock:
            return self.reporter.user_activity(self.state, timeframe)

    def get_business_insights(self) -> BusinessInsights:
        with self._lock:
            return self.reporter.business_insights(self.state)

    def get_system_health(self) -> SystemHealth:
        with self._lock:
            return self.reporter.system_health(self.state, self.uptime_seconds)

    @property
    def uptime_seconds(self) -> float:
        return time.monotonic() - self._started_monotonic

    @property
    def total_events(self) -> int:
        with self._lock:
            return self.state.total_requests


# ── Singleton Instance ────────────────────────────────────────────────────
# The application's analytics engine; create_app() attaches it to app.state
analytics_service = AnalyticsService()
