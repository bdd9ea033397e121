"""Event sinks for route and invoice notifications."""

from .events import (
    INVOICE_GENERATED,
    ROUTE_ASSIGNED,
    EventSink,
    LoggingEventSink,
    RecordingEventSink,
    WebhookEventSink,
    build_event_sink,
)

__all__ = [
    "INVOICE_GENERATED",
    "ROUTE_ASSIGNED",
    "EventSink",
    "LoggingEventSink",
    "RecordingEventSink",
    "WebhookEventSink",
    "build_event_sink",
]
