"""Thread-safe in-process queue with visibility leases."""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

from ..config import settings
from .transport import QueueDepth, QueueMessage, encode_body

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    body: str
    attributes: dict[str, str]
    visible_at: float
    receipt_handle: str | None = None
    receive_count: int = 0


class InMemoryQueueTransport:
    """Behaves like a hosted queue: receive leases messages, ack deletes them.

    ``clock`` is injectable so tests can move time forward without sleeping.
    """

    def __init__(
        self,
        visibility_timeout: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.visibility_timeout = (
            visibility_timeout if visibility_timeout is not None else settings.queue_visibility_timeout_seconds
        )
        self._clock = clock
        self._queues: dict[str, OrderedDict[str, _Entry]] = {}
        self._condition = threading.Condition()

    def _queue(self, name: str) -> OrderedDict[str, _Entry]:
        return self._queues.setdefault(name, OrderedDict())

    def send(self, queue: str, body: Any, attributes: Mapping[str, str] | None = None) -> str:
        message_id = uuid.uuid4().hex
        now = self._clock()
        with self._condition:
            self._queue(queue)[message_id] = _Entry(
                body=encode_body(body),
                attributes={key: str(value) for key, value in (attributes or {}).items()},
                visible_at=now,
            )
            self._condition.notify_all()
        logger.debug("Message %s sent to queue %s", message_id, queue)
        return message_id

    def _lease(self, queue: str, max_messages: int, visibility: float) -> list[QueueMessage]:
        now = self._clock()
        leased: list[QueueMessage] = []
        for message_id, entry in self._queue(queue).items():
            if len(leased) >= max_messages:
                break
            if entry.visible_at > now:
                continue
            entry.receipt_handle = uuid.uuid4().hex
            entry.receive_count += 1
            entry.visible_at = now + visibility
            leased.append(
                QueueMessage(
                    message_id=message_id,
                    queue=queue,
                    body=entry.body,
                    receipt_handle=entry.receipt_handle,
                    attributes=dict(entry.attributes),
                    receive_count=entry.receive_count,
                )
            )
        return leased

    def receive(
        self,
        queue: str,
        max_messages: int = 10,
        wait_time_seconds: float = 0,
        visibility_timeout: float | None = None,
    ) -> Sequence[QueueMessage]:
        visibility = self.visibility_timeout if visibility_timeout is None else visibility_timeout
        deadline = time.monotonic() + max(wait_time_seconds, 0)
        with self._condition:
            while True:
                leased = self._lease(queue, max_messages, visibility)
                remaining = deadline - time.monotonic()
                if leased or remaining <= 0:
                    return leased
                # Wake on send, or re-check periodically for expiring leases.
                self._condition.wait(timeout=min(remaining, 1.0))

    def ack(self, message: QueueMessage, requeue: bool = False, delay_hint: float | None = None) -> bool:
        with self._condition:
            entries = self._queue(message.queue)
            entry = entries.get(message.message_id)
            if entry is None or entry.receipt_handle != message.receipt_handle:
                logger.warning("Ignoring ack for %s on %s: receipt handle is stale", message.message_id, message.queue)
                return False

            if not requeue:
                del entries[message.message_id]
                return True

            entry.body = message.body
            entry.receipt_handle = None
            if delay_hint is not None:
                entry.visible_at = self._clock() + delay_hint
            self._condition.notify_all()
            return True

    def depth(self, queue: str) -> QueueDepth:
        now = self._clock()
        with self._condition:
            entries = list(self._queue(queue).values())
        available = sum(1 for entry in entries if entry.visible_at <= now)
        in_flight = sum(1 for entry in entries if entry.visible_at > now and entry.receipt_handle is not None)
        delayed = len(entries) - available - in_flight
        return QueueDepth(available=available, in_flight=in_flight, delayed=delayed)

    def purge(self, queue: str) -> int:
        with self._condition:
            entries = self._queue(queue)
            count = len(entries)
            entries.clear()
        logger.info("Purged %s messages from queue %s", count, queue)
        return count
