"""
NoteMate Backend — Analytics Event Variants
============================================

What:  One pydantic model per analytics event type, plus `parse_event()`.
Why:   Callers hand the recorder a loose `details` mapping; turning it into a
       closed set of variants means each branch of the recorder only sees the
       fields it actually uses.
How:   `parse_event(event_type, details)` picks the variant from EVENT_VARIANTS
       (anything else becomes a CustomEvent) and validates the mapping.

Accepted keys:
    Both camelCase (`responseTime`, as sent by the front-end) and snake_case
    (`response_time`) spellings. Unknown keys are ignored, except on custom
    events where they are kept verbatim in `extra`.

Tolerance:
    A details mapping with a wrongly typed field (e.g. `responseTime: "fast"`)
    is logged and recorded as the same event type with no optional fields.
    Analytics must never fail the request that produced the event.
"""

import logging
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Type

from pydantic import ConfigDict, Field, ValidationError, field_validator

from app.models.analytics import CamelModel

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    REQUEST_START = "request_start"
    REQUEST_SUCCESS = "request_success"
    REQUEST_ERROR = "request_error"
    PRINT = "print"


class AnalyticsEvent(CamelModel):
    """Base for all event variants."""

    model_config = ConfigDict(extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def _blank_is_absent(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class RequestStartEvent(AnalyticsEvent):
    endpoint: Optional[str] = None
    method: Optional[str] = None
    user_agent: Optional[str] = None
    ip: Optional[str] = None


class RequestSuccessEvent(AnalyticsEvent):
    endpoint: Optional[str] = None
    response_time: Optional[float] = Field(default=None, ge=0)
    type: Optional[str] = None


class RequestErrorEvent(AnalyticsEvent):
    endpoint: Optional[str] = None
    error_type: Optional[str] = None
    # Accepted for symmetry with request_success; error latency is not aggregated
    response_time: Optional[float] = Field(default=None, ge=0)


class PrintEvent(AnalyticsEvent):
    type: Optional[str] = None


class CustomEvent(AnalyticsEvent):
    """Admin- or front-end-defined event; counted, not interpreted."""

    event_type: str
    extra: Dict[str, Any] = Field(default_factory=dict)


EVENT_VARIANTS: Dict[str, Type[AnalyticsEvent]] = {
    EventType.REQUEST_START.value: RequestStartEvent,
    EventType.REQUEST_SUCCESS.value: RequestSuccessEvent,
    EventType.REQUEST_ERROR.value: RequestErrorEvent,
    EventType.PRINT.value: PrintEvent,
}


def parse_event(event_type: str, details: Optional[Mapping[str, Any]] = None) -> AnalyticsEvent:
    """
    Build the typed variant for `event_type` from a loose details mapping.

    Never raises: bad details degrade to an empty variant of the same type.
    """
    details = dict(details) if isinstance(details, Mapping) else {}
    variant = EVENT_VARIANTS.get(event_type)

    if variant is None:
        # model_construct: custom names are opaque and skip field validation
        return CustomEvent.model_construct(event_type=str(event_type), extra=details)

    try:
        return variant.model_validate(details)
    except ValidationError as e:
        logger.warning(
            "Malformed details for %s event, recording without them: %s",
            event_type,
            "; ".join(f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors()),
        )
        return variant()
