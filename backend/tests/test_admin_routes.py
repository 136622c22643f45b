"""
NoteMate Backend — Admin Route Tests
=====================================

What:  HTTP-level tests for /api/admin/* and /health.
How:   HTTPX AsyncClient over ASGITransport against create_app(analytics),
       where `analytics` is a fresh service writing under tmp_path.

Note: admin calls are themselves /api/ requests, so the analytics middleware
records a request_start before each handler runs.
"""

import pytest

DAY = "2026-10-19"


class TestAdminAccess:

    @pytest.mark.asyncio
    async def test_missing_key_is_rejected(self, test_client):
        response = await test_client.get("/api/admin/analytics")

        assert response.status_code == 401
        body = response.json()
        assert body["error"] == "unauthorized"
        assert body["message"] == "Access token required"
        assert "X-Request-ID" in response.headers

    @pytest.mark.asyncio
    async def test_unknown_key_is_rejected(self, test_client):
        response = await test_client.get(
            "/api/admin/system/health", headers={"X-Admin-Key": "guess"}
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired token"

    @pytest.mark.asyncio
    async def test_non_ascii_key_is_rejected_not_crashed(self, test_client, analytics):
        response = await test_client.get(
            "/api/admin/analytics", headers={"X-Admin-Key": "clé".encode("latin-1")}
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired token"
        assert analytics.state.errors_by_type == {"HTTP_401": 1}

    @pytest.mark.asyncio
    async def test_every_listed_key_is_accepted(self, test_client):
        response = await test_client.get(
            "/api/admin/system/health", headers={"X-Admin-Key": "second-admin-key"}
        )

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_track_requires_key(self, test_client):
        response = await test_client.post("/api/admin/track", json={"eventType": "x"})

        assert response.status_code == 401


class TestReportingRoutes:

    @pytest.mark.asyncio
    async def test_dashboard_envelope_and_shape(self, test_client, admin_headers):
        response = await test_client.get("/api/admin/analytics", headers=admin_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert "timestamp" in body

        data = body["data"]
        assert set(data) == {"overview", "charts", "insights"}
        assert data["overview"]["totalRequests"] == 1
        assert len(data["charts"]["last7Days"]) == 7
        assert len(data["charts"]["last24Hours"]) == 24
        assert data["charts"]["last7Days"][-1] == {
            "date": DAY, "requests": 1, "errors": 0, "prints": 0,
        }
        assert data["insights"]["topEndpoints"] == [
            {"endpoint": "/api/admin/analytics", "count": 1},
        ]

    @pytest.mark.asyncio
    async def test_raw_state_uses_snapshot_shape(self, test_client, admin_headers):
        response = await test_client.get("/api/admin/analytics/raw", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["totalRequests"] == 1
        assert data["responseTimeStats"]["min"] is None
        assert data["dailyStats"][DAY]["uniqueUsers"] == ["127.0.0.1"]
        assert data["dailyStats"][DAY]["uniqueUserCount"] == 1
        assert data["requestsByMethod"]["GET"] == 1

    @pytest.mark.asyncio
    async def test_system_health(self, test_client, admin_headers):
        response = await test_client.get("/api/admin/system/health", headers=admin_headers)

        data = response.json()["data"]
        assert data["status"] == "healthy"
        assert data["uptime"]["formatted"] == "0d 0h 0m"
        assert data["requests"]["total"] == 1
        assert data["requests"]["successRate"] == "0.00"
        assert data["performance"]["minResponseTime"] == 0

    @pytest.mark.asyncio
    async def test_user_activity_timeframes(self, test_client, admin_headers):
        daily = await test_client.get("/api/admin/users/activity", headers=admin_headers)
        hourly = await test_client.get(
            "/api/admin/users/activity", params={"timeframe": "24h"}, headers=admin_headers
        )

        daily_data = daily.json()["data"]
        assert daily_data["overview"] == {
            "uniqueUsers": 1, "totalSessions": 0, "averageRequestsPerUser": 1,
        }
        assert len(daily_data["activity"]) == 7
        assert daily_data["activity"][-1]["period"] == DAY

        hourly_data = hourly.json()["data"]
        assert len(hourly_data["activity"]) == 24
        assert hourly_data["activity"][-1]["period"] == 14

    @pytest.mark.asyncio
    async def test_business_insights(self, test_client, admin_headers, analytics):
        for _ in range(3):
            await analytics.record_event("request_success", {"type": "text", "responseTime": 40})
        await analytics.record_event("request_success", {"type": "audio", "responseTime": 60})

        response = await test_client.get("/api/admin/insights/business", headers=admin_headers)

        data = response.json()["data"]
        adoption = data["featureAdoption"]
        assert adoption["totalUsage"] == 4
        assert adoption["mostPopular"] == {"feature": "text", "usage": 3, "percentage": "75.0"}
        assert data["userEngagement"]["averageResponseTime"] == 45
        assert data["trends"]["dailyGrowth"] == 0
        assert data["recommendations"][0]["title"] == "Underutilized Features"


class TestTrackEvent:

    @pytest.mark.asyncio
    async def test_custom_event_recorded(self, test_client, admin_headers, analytics):
        response = await test_client.post(
            "/api/admin/track",
            json={"eventType": "export_clicked", "details": {"format": "pdf"}},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Event tracked successfully"}
        # request_start + the custom event + request_success
        assert analytics.total_events == 3

    @pytest.mark.asyncio
    async def test_known_event_type_through_track(self, test_client, admin_headers, analytics):
        await test_client.post(
            "/api/admin/track",
            json={"eventType": "print", "details": {"type": "ppt"}},
            headers=admin_headers,
        )

        assert analytics.state.prints_total == 1
        assert analytics.state.prints_by_type["ppt"] == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [{}, {"eventType": ""}, {"eventType": "   "}])
    async def test_missing_event_type(self, test_client, admin_headers, payload):
        response = await test_client.post("/api/admin/track", json=payload, headers=admin_headers)

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["message"] == "Event type is required"
        assert body["details"] == {"field": "eventType"}


class TestHealth:

    @pytest.mark.asyncio
    async def test_health_check(self, test_client, analytics):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["analytics_snapshot"] == "missing"
        assert body["total_events"] == 0

    @pytest.mark.asyncio
    async def test_health_degraded_without_checkpoint(self, test_client, analytics):
        analytics.state.total_requests = analytics.checkpoint_interval

        body = (await test_client.get("/health")).json()

        assert body["status"] == "degraded"
        assert body["total_events"] == 10
