"""Outbound route and invoice notifications.

Sinks are fire-and-forget: a failing sink logs the error and returns, so a
notification problem never fails the message that produced it.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Mapping, Protocol

import httpx

from ..config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

ROUTE_ASSIGNED = "route_assigned"
INVOICE_GENERATED = "invoice_generated"


class EventSink(Protocol):
    def emit(self, event_type: str, payload: Mapping[str, Any]) -> None:
        ...


class LoggingEventSink:
    def emit(self, event_type: str, payload: Mapping[str, Any]) -> None:
        logger.info(f"Event {event_type}: {dict(payload)}")


class WebhookEventSink:
    """POSTs ``{"event": <type>, "data": <payload>}`` to a single endpoint."""

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.url = url
        self._client = client or httpx.Client(timeout=httpx.Timeout(timeout))

    def emit(self, event_type: str, payload: Mapping[str, Any]) -> None:
        try:
            response = self._client.post(self.url, json={"event": event_type, "data": dict(payload)})
            response.raise_for_status()
            logger.debug(f"Event {event_type} delivered to {self.url}")
        except httpx.HTTPError as exc:
            logger.error(f"Failed to deliver event {event_type} to {self.url}: {exc}")

    def close(self) -> None:
        self._client.close()


class RecordingEventSink:
    """Keeps every emitted event in memory."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []
        self._lock = threading.Lock()

    def emit(self, event_type: str, payload: Mapping[str, Any]) -> None:
        with self._lock:
            self.events.append((event_type, dict(payload)))

    def of_type(self, event_type: str) -> list[dict[str, Any]]:
        with self._lock:
            return [payload for kind, payload in self.events if kind == event_type]


def build_event_sink(config: Settings | None = None) -> EventSink:
    config = config or default_settings
    if config.event_webhook_url:
        return WebhookEventSink(config.event_webhook_url, timeout=config.event_webhook_timeout_seconds)
    return LoggingEventSink()
