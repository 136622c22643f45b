"""
NoteMate Backend — Analytics Service Unit Tests
================================================

What:  Tests for AnalyticsService: checkpoint cadence, load/reload and
       failure handling.
How:   Uses a real SnapshotStore under tmp_path where the file matters, and
       an AsyncMock store where only the calls matter.

What we test:
    ✅ Checkpoint every N events (10 → 1 write, 9 → 0)
    ✅ Persistence failures never reach the caller
    ✅ Missing snapshot creates one; corrupt snapshot keeps defaults
    ✅ Save then load reproduces the aggregate
    ✅ Slow writes are abandoned after the timeout
    ✅ Overlapping checkpoints never roll the file back
"""

import asyncio
import json
import math
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.exceptions import SnapshotStorageError
from app.services.analytics_service import AnalyticsService
from app.services.snapshot_store import SnapshotStore


def mock_store(**kwargs):
    store = MagicMock(spec=SnapshotStore)
    store.path = MagicMock()
    store.save = AsyncMock(**kwargs)
    store.load = AsyncMock(return_value=None)
    return store


async def replay(service, count):
    for i in range(count):
        await service.record_event("request_start", {"endpoint": f"/api/e{i % 3}", "ip": f"10.0.0.{i % 4}"})


class TestCheckpointCadence:

    @pytest.mark.asyncio
    async def test_ten_events_write_once(self, clock):
        store = mock_store()
        service = AnalyticsService(store=store, checkpoint_interval=10, clock=clock)

        await replay(service, 10)

        store.save.assert_awaited_once()
        snapshot = store.save.await_args.args[0]
        assert snapshot["totalRequests"] == 10

    @pytest.mark.asyncio
    async def test_nine_events_do_not_write(self, clock):
        store = mock_store()
        service = AnalyticsService(store=store, checkpoint_interval=10, clock=clock)

        await replay(service, 9)

        store.save.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_every_multiple_writes(self, clock):
        store = mock_store()
        service = AnalyticsService(store=store, checkpoint_interval=3, clock=clock)

        await replay(service, 7)

        assert store.save.await_count == 2


class SlowFirstSaveStore(SnapshotStore):
    """Real store whose first save stalls, so a later checkpoint can overtake it."""

    def __init__(self, path, delay=0.2):
        super().__init__(path)
        self.delay = delay
        self.saved = []

    async def save(self, snapshot):
        if not self.saved:
            self.saved.append(None)
            await asyncio.sleep(self.delay)
        await super().save(snapshot)
        self.saved.append(snapshot["totalRequests"])


class TestCheckpointOrdering:

    @pytest.mark.asyncio
    async def test_slow_checkpoint_is_not_overtaken(self, clock, snapshot_path):
        store = SlowFirstSaveStore(str(snapshot_path))
        service = AnalyticsService(store=store, checkpoint_interval=10, clock=clock)

        await replay(service, 9)
        tenth = asyncio.create_task(service.record_event("request_start", {"endpoint": "/api/slow"}))
        await asyncio.sleep(0.01)
        await replay(service, 10)
        await tenth

        assert service.total_events == 20
        assert store.saved[1:] == [10, 20]
        assert json.loads(snapshot_path.read_text())["totalRequests"] == 20

    @pytest.mark.asyncio
    async def test_save_racing_a_checkpoint_keeps_newest(self, clock, snapshot_path):
        store = SlowFirstSaveStore(str(snapshot_path))
        service = AnalyticsService(store=store, checkpoint_interval=10, clock=clock)

        await replay(service, 9)
        tenth = asyncio.create_task(service.record_event("print"))
        await asyncio.sleep(0.01)
        await replay(service, 3)
        await service.shutdown()
        await tenth

        assert json.loads(snapshot_path.read_text())["totalRequests"] == 13

    @pytest.mark.asyncio
    async def test_older_snapshot_is_dropped(self, clock):
        store = mock_store()
        service = AnalyticsService(store=store, checkpoint_interval=100, clock=clock)

        await replay(service, 5)
        stale = service.state.to_snapshot()
        await replay(service, 2)
        assert await service.save() is True

        assert await service._write(stale) is True
        assert store.save.await_count == 1
        assert store.save.await_args.args[0]["totalRequests"] == 7


class TestFailureHandling:

    @pytest.mark.asyncio
    async def test_storage_error_is_swallowed(self, clock):
        store = mock_store(side_effect=SnapshotStorageError(context={"path": "x"}))
        service = AnalyticsService(store=store, checkpoint_interval=1, clock=clock)

        await service.record_event("print", {"type": "text"})

        assert service.state.prints_total == 1
        assert await service.save() is False

    @pytest.mark.asyncio
    async def test_slow_write_times_out(self, clock):
        async def hang(snapshot):
            await asyncio.sleep(5)

        store = mock_store(side_effect=hang)
        service = AnalyticsService(store=store, checkpoint_interval=1, write_timeout=0.05, clock=clock)

        await service.record_event("custom_event")

        assert service.total_events == 1
        assert await service.save() is False

    @pytest.mark.asyncio
    async def test_recording_failure_is_logged_not_raised(self, clock):
        service = AnalyticsService(store=mock_store(), clock=clock)
        service.recorder = MagicMock()
        service.recorder.apply.side_effect = RuntimeError("boom")

        await service.record_event("request_start", {"endpoint": "/api/x"})

        assert service.total_events == 0


class TestLoad:

    @pytest.mark.asyncio
    async def test_missing_snapshot_is_created(self, analytics, snapshot_path):
        await analytics.load()

        assert snapshot_path.is_file()
        written = json.loads(snapshot_path.read_text())
        assert written["totalRequests"] == 0
        assert written["responseTimeStats"]["min"] is None

    @pytest.mark.asyncio
    async def test_corrupt_snapshot_keeps_defaults(self, analytics, snapshot_path):
        snapshot_path.parent.mkdir(parents=True)
        snapshot_path.write_text("{not json")

        await analytics.load()

        assert analytics.total_events == 0
        assert snapshot_path.read_text() == "{not json"

    @pytest.mark.asyncio
    async def test_wrong_shape_keeps_defaults(self, analytics, snapshot_path):
        snapshot_path.parent.mkdir(parents=True)
        snapshot_path.write_text(json.dumps({"totalRequests": "lots", "dailyStats": []}))

        await analytics.load()

        assert analytics.total_events == 0

    @pytest.mark.asyncio
    async def test_partial_snapshot_merges_over_defaults(self, analytics, snapshot_path):
        snapshot_path.parent.mkdir(parents=True)
        snapshot_path.write_text(json.dumps({"totalRequests": 42, "printsTotal": 3}))

        await analytics.load()

        assert analytics.state.total_requests == 42
        assert analytics.state.prints_total == 3
        assert analytics.state.requests_by_method["GET"] == 0
        assert math.isinf(analytics.state.response_time_stats.min)

    @pytest.mark.asyncio
    async def test_legacy_unique_user_count(self, analytics, snapshot_path):
        snapshot_path.parent.mkdir(parents=True)
        snapshot_path.write_text(json.dumps({
            "totalRequests": 5,
            "dailyStats": {"2026-10-19": {"requests": 5, "uniqueUsers": 3}},
        }))

        await analytics.load()
        day = analytics.state.daily_stats["2026-10-19"]
        assert day.unique_user_count == 3

        await analytics.record_event("request_start", {"ip": "10.0.0.9"})
        assert day.unique_user_count == 1


class TestReload:

    @pytest.mark.asyncio
    async def test_save_then_load_is_idempotent(self, analytics, snapshot_store, clock):
        await replay(analytics, 4)
        await analytics.record_event("request_success", {"endpoint": "/api/e0", "responseTime": 120, "type": "text"})
        await analytics.record_event("request_error", {"endpoint": "/api/e1", "errorType": "HTTP_500"})
        await analytics.record_event("print", {"type": "ppt"})
        assert await analytics.save() is True

        reloaded = AnalyticsService(store=snapshot_store, checkpoint_interval=10, clock=clock)
        await reloaded.load()

        before = analytics.state.to_snapshot()
        after = reloaded.state.to_snapshot()
        assert after == before
        assert reloaded.state.daily_stats["2026-10-19"].unique_users == {
            "10.0.0.0", "10.0.0.1", "10.0.0.2", "10.0.0.3",
        }

    @pytest.mark.asyncio
    async def test_unique_users_survive_reload_with_interleaved_events(
        self, analytics, snapshot_store, clock
    ):
        await analytics.record_event("request_start", {"ip": "A"})
        await analytics.record_event("request_success", {"responseTime": 30})
        await analytics.record_event("request_start", {"ip": "A"})
        await analytics.record_event("print", {"type": "text"})
        await analytics.save()

        reloaded = AnalyticsService(store=snapshot_store, checkpoint_interval=10, clock=clock)
        await reloaded.load()
        day = reloaded.state.daily_stats["2026-10-19"]
        assert day.unique_user_count == 1

        await reloaded.record_event("request_error", {"errorType": "HTTP_404"})
        await reloaded.record_event("request_start", {"ip": "A"})
        await reloaded.record_event("custom_event")
        await reloaded.record_event("request_start", {"ip": "B"})
        await reloaded.record_event("request_success", {"responseTime": 10})

        assert day.unique_user_count == 2
        assert day.unique_users == {"A", "B"}

    @pytest.mark.asyncio
    async def test_start_time_belongs_to_new_process(self, analytics, snapshot_store, clock):
        await analytics.record_event("print")
        await analytics.save()

        clock.advance(hours=3)
        reloaded = AnalyticsService(store=snapshot_store, clock=clock)
        await reloaded.load()

        assert reloaded.state.system_info.start_time == clock()
        assert reloaded.total_events == 1

    @pytest.mark.asyncio
    async def test_shutdown_writes_partial_interval(self, analytics, snapshot_path):
        await replay(analytics, 3)

        await analytics.shutdown()

        assert json.loads(snapshot_path.read_text())["totalRequests"] == 3


class TestAccessors:

    @pytest.mark.asyncio
    async def test_raw_state_is_a_copy(self, analytics):
        await analytics.record_event("request_start", {"endpoint": "/api/a"})

        raw = analytics.get_raw_state()
        raw.requests_by_endpoint["/api/a"] = 999

        assert analytics.state.requests_by_endpoint["/api/a"] == 1

    @pytest.mark.asyncio
    async def test_views_reflect_recorded_events(self, analytics):
        await analytics.record_event("request_start", {"ip": "1.2.3.4"})
        await analytics.record_event("request_success", {"responseTime": 80})

        assert analytics.get_dashboard().overview.total_requests == 2
        assert analytics.get_user_activity("24h").overview.unique_users == 1
        assert analytics.get_business_insights().user_engagement.error_rate == "0.00"
        assert analytics.get_system_health().performance.min_response_time == 80
