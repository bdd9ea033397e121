"""Queue transport contract shared by the in-memory and Redis backends."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Protocol, Sequence


@dataclass(slots=True)
class QueueMessage:
    """A leased message. Only the transport that issued it may ack it."""

    message_id: str
    queue: str
    body: str
    receipt_handle: str
    attributes: dict[str, str] = field(default_factory=dict)
    receive_count: int = 1

    @property
    def retry_count(self) -> int:
        """``retryCount`` carried inside the body; 0 when absent or unreadable."""
        try:
            payload = json.loads(self.body)
            return int(payload.get("retryCount") or 0)
        except (TypeError, ValueError, AttributeError):
            return 0

    def with_retry_count(self, retry_count: int) -> "QueueMessage":
        payload = json.loads(self.body)
        payload["retryCount"] = retry_count
        return replace(self, body=json.dumps(payload))


@dataclass(slots=True)
class QueueDepth:
    available: int
    in_flight: int
    delayed: int


class QueueTransport(Protocol):
    def receive(
        self,
        queue: str,
        max_messages: int = 10,
        wait_time_seconds: float = 0,
        visibility_timeout: float | None = None,
    ) -> Sequence[QueueMessage]:
        """Lease up to ``max_messages``; leased messages stay hidden until acked or expired."""
        ...

    def ack(self, message: QueueMessage, requeue: bool = False, delay_hint: float | None = None) -> bool:
        """Delete the message, or with ``requeue`` return it carrying ``message.body``.

        A requeued message becomes visible after ``delay_hint`` seconds, or when
        its current lease expires if no hint is given. Returns False when the
        receipt handle is stale.
        """
        ...

    def send(self, queue: str, body: Any, attributes: Mapping[str, str] | None = None) -> str:
        ...

    def depth(self, queue: str) -> QueueDepth:
        ...

    def purge(self, queue: str) -> int:
        ...


def encode_body(body: Any) -> str:
    if isinstance(body, str):
        return body
    return json.dumps(body, default=str)
