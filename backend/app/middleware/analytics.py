"""
NoteMate Backend — Analytics Middleware
========================================

What:  Emits request_start / request_success / request_error analytics events
       for every request under /api/.
Why:   The route handlers stay unaware of analytics; every API call is counted
       the same way.
How:   Records request_start before the handler runs, then classifies the
       response: 2xx/3xx → request_success, anything else → request_error
       with errorType "HTTP_<status>". An exception escaping the handler is
       recorded as HTTP_500 and re-raised for the global handler.
Who:   Reads the AnalyticsService from `request.app.state.analytics`.

Event details sent:
    request_start    endpoint, method, userAgent, ip
    request_success  endpoint, responseTime (ms), type (?type= query param)
    request_error    endpoint, errorType, responseTime (ms)
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.models.events import EventType

logger = logging.getLogger(__name__)


class AnalyticsMiddleware(BaseHTTPMiddleware):
    """Feeds the analytics engine from the HTTP request/response cycle."""

    def __init__(self, app, path_prefix: str = "/api/", **kwargs):
        super().__init__(app, **kwargs)
        self.path_prefix = path_prefix

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if not path.startswith(self.path_prefix):
            return await call_next(request)

        analytics = request.app.state.analytics
        start_time = time.perf_counter()

        await analytics.record_event(EventType.REQUEST_START.value, {
            "endpoint": path,
            "method": request.method,
            "userAgent": request.headers.get("user-agent"),
            "ip": request.client.host if request.client else None,
        })

        try:
            response = await call_next(request)
        except Exception:
            await analytics.record_event(EventType.REQUEST_ERROR.value, {
                "endpoint": path,
                "errorType": "HTTP_500",
                "responseTime": self._elapsed_ms(start_time),
            })
            raise

        status = response.status_code
        if 200 <= status < 400:
            await analytics.record_event(EventType.REQUEST_SUCCESS.value, {
                "endpoint": path,
                "responseTime": self._elapsed_ms(start_time),
                "type": request.query_params.get("type"),
            })
        else:
            await analytics.record_event(EventType.REQUEST_ERROR.value, {
                "endpoint": path,
                "errorType": f"HTTP_{status}",
                "responseTime": self._elapsed_ms(start_time),
            })

        return response

    @staticmethod
    def _elapsed_ms(start_time: float) -> int:
        return int((time.perf_counter() - start_time) * 1000)
