"""
NoteMate Backend — Middleware Package
======================================

Middleware Chain (outermost first):
    Request → [Rate Limit] → [Request ID] → [Logging] → [Analytics] → [GZip] → [CORS] → Route

    1. Rate Limit: reject abusive clients before anything is counted
    2. Request ID: correlation ID for logs and error bodies
    3. Logging: access log line with status and duration
    4. Analytics: request_start / request_success / request_error events
"""
