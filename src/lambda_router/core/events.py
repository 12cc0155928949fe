"""Invocation payload shapes: gateway-style and load-balancer-style events."""
from __future__ import annotations

import base64
import enum
from typing import Any, Protocol, runtime_checkable

RequestEvent = dict[str, Any]
ResponseResult = dict[str, Any]


class EventSource(str, enum.Enum):
    """Which kind of event triggered the invocation."""

    APIGW = "APIGW"
    ALB = "ALB"


@runtime_checkable
class HandlerContext(Protocol):
    """The context object the platform passes next to the event."""

    aws_request_id: str
    function_name: str

    def get_remaining_time_in_millis(self) -> int:
        ...


def request_context(event: RequestEvent) -> dict[str, Any]:
    return event.get("requestContext") or {}


def detect_event_source(event: RequestEvent) -> EventSource:
    """Load balancer events carry an `elb` block in their request context."""
    if "elb" in request_context(event):
        return EventSource.ALB
    return EventSource.APIGW


def event_headers(event: RequestEvent) -> dict[str, list[str]]:
    """Header map of the event as name -> values. Multi-valued headers win when present."""
    multi = event.get("multiValueHeaders")
    if multi:
        return {k: list(v) for k, v in multi.items() if v is not None}
    single = event.get("headers") or {}
    return {k: [v] for k, v in single.items() if v is not None}


def event_body(event: RequestEvent) -> str | None:
    """Raw request body as text; base64 bodies are decoded first."""
    body = event.get("body")
    if body and event.get("isBase64Encoded"):
        return base64.b64decode(body).decode("utf-8")
    return body
