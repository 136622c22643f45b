"""
NoteMate Backend — Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Every analytics test needs the same pieces: a pinned clock, a snapshot
       file in a temp directory, and a fresh AnalyticsService.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── clock: FrozenClock pinned to 2026-10-19 14:30 local time
    ├── state: Fresh AggregateState started at the clock's time
    ├── snapshot_path / snapshot_store: Snapshot file under tmp_path
    ├── analytics: AnalyticsService on that store and clock
    └── test_client / admin_headers: HTTPX AsyncClient against create_app(analytics)
"""

import os
import tempfile
from datetime import datetime, timedelta

# Override settings for testing BEFORE any app imports
# Why: Settings are read once, when app.config is first imported
os.environ["ADMIN_API_KEYS"] = "test-admin-key,second-admin-key"
os.environ["ANALYTICS_FILE"] = os.path.join(
    tempfile.mkdtemp(prefix="notemate_test_"), "analytics.json"
)
os.environ["SNAPSHOT_RETRY_MIN_WAIT"] = "0"
os.environ["SNAPSHOT_RETRY_MAX_WAIT"] = "0"
os.environ["LOG_LEVEL"] = "WARNING"  # Reduce noise during tests

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from app.models.analytics import AggregateState  # noqa: E402
from app.services.analytics_service import AnalyticsService  # noqa: E402
from app.services.snapshot_store import SnapshotStore  # noqa: E402

ADMIN_KEY = "test-admin-key"


class FrozenClock:
    """
    Callable clock that only moves when told to.

    Usage:
        clock.advance(hours=1)
    """

    def __init__(self, moment: datetime):
        self.moment = moment

    def __call__(self) -> datetime:
        return self.moment

    def advance(self, **delta) -> None:
        self.moment = self.moment + timedelta(**delta)


@pytest.fixture
def clock():
    return FrozenClock(datetime(2026, 10, 19, 14, 30).astimezone())


@pytest.fixture
def state(clock):
    return AggregateState.fresh(clock())


@pytest.fixture
def snapshot_path(tmp_path):
    return tmp_path / "data" / "analytics.json"


@pytest.fixture
def snapshot_store(snapshot_path):
    return SnapshotStore(path=str(snapshot_path))


@pytest.fixture
def analytics(snapshot_store, clock):
    """
    A fresh analytics engine writing to tmp_path.

    Checkpoint interval is pinned to 10 so cadence tests do not depend on
    the environment.
    """
    return AnalyticsService(store=snapshot_store, checkpoint_interval=10, clock=clock)


@pytest.fixture
def admin_headers():
    return {"X-Admin-Key": ADMIN_KEY}


@pytest_asyncio.fixture
async def test_client(analytics):
    """
    Provides an async HTTP test client for endpoint testing.

    What:    HTTPX AsyncClient talking to an app built around the `analytics` fixture.
    How:     ASGITransport routes requests directly to the app. Lifespan does
             not run, so nothing is loaded from disk.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from app.main import create_app

    app = create_app(analytics)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
