"""
NoteMate Backend — Custom Exception Hierarchy
==============================================

What:  Defines application-specific exceptions for different error scenarios.
Why:   Custom exceptions enable targeted error handling with appropriate HTTP
       status codes and user-friendly messages.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch the HTTP-facing
       ones; the snapshot errors never leave AnalyticsService.
Who:   Raised by services, routes and middleware.

Exception Hierarchy:
    NoteMateError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── AuthenticationError      → 401 Unauthorized
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── SnapshotStorageError     → logged and swallowed (disk I/O failed)
    └── SnapshotCorruptError     → logged and swallowed (unreadable snapshot)

Analytics is a best-effort sidecar: the two snapshot errors are raised by
SnapshotStore so the failure is typed, then caught by AnalyticsService
and only logged. They never reach a request handler.
"""

from typing import Any, Dict, Optional


class NoteMateError(Exception):
    """
    Base exception for all NoteMate application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(NoteMateError):
    """
    Raised when client input fails validation.

    When:    Missing event type on /track, blank required fields.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(NoteMateError):
    """
    Raised when an admin route is called without a valid admin key.

    HTTP:    401 Unauthorized
    """

    def __init__(
        self,
        message: str = "Access token required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(NoteMateError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class SnapshotStorageError(NoteMateError):
    """
    Raised when the analytics snapshot cannot be read or written.

    What:    Disk full, permission denied, directory not writable, write timeout.
    Recovery:
        - AnalyticsService logs the error with the snapshot path
        - In-memory state is untouched; the next checkpoint tries again
    """

    def __init__(
        self,
        message: str = "Analytics snapshot storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class SnapshotCorruptError(NoteMateError):
    """
    Raised when the analytics snapshot exists but cannot be parsed.

    What:    Invalid JSON, or a document that is not an object.
    Recovery:
        - Logged once at startup; in-memory defaults stay in place
        - No retry: the next checkpoint overwrites the bad file
    """

    def __init__(
        self,
        message: str = "Analytics snapshot is corrupt or unreadable",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
