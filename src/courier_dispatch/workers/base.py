"""Generic long-polling queue worker.

A worker owns one queue. Each iteration leases a batch, validates every body,
runs the handler for the whole batch concurrently and then acks each message
according to its outcome:

* handler returned -> delete
* body failed validation -> delete (a malformed body never gets better)
* handler raised, ``retryCount < max_retries`` -> requeue with ``retryCount + 1``
* handler raised, retries exhausted -> delete and log at ERROR
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Any

from ..config import Settings, settings as default_settings
from ..exceptions import DispatchError, MessageValidationError, TransientTransportError
from ..queue.transport import QueueMessage, QueueTransport
from ..schemas.messages import parse_message_body

logger = logging.getLogger(__name__)


class HandlerResult(str, Enum):
    PROCESSED = "processed"
    SKIPPED = "skipped"


class MessageOutcome(str, Enum):
    PROCESSED = "processed"
    SKIPPED = "skipped"
    RETRIED = "retried"
    DROPPED = "dropped"
    REJECTED = "rejected"


class Worker:
    """Base class; subclasses set ``message_model`` and implement ``handle``."""

    message_model: type = object

    def __init__(
        self,
        name: str,
        queue_name: str,
        transport: QueueTransport,
        config: Settings | None = None,
    ) -> None:
        config = config or default_settings
        self.name = name
        self.queue_name = queue_name
        self.transport = transport
        self.max_retries = config.worker_max_retries
        self.poll_interval = config.worker_poll_interval_seconds
        self.error_backoff = config.worker_error_backoff_seconds
        self.retry_delay = config.worker_retry_delay_seconds
        self.max_messages = config.queue_max_messages
        self.wait_time = config.queue_wait_time_seconds
        self.visibility_timeout = config.queue_visibility_timeout_seconds
        self._stop_event = threading.Event()
        self._stop_event.set()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    def handle(self, message: Any) -> HandlerResult:
        raise NotImplementedError

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set()

    def start(self) -> bool:
        """Start the polling thread. Returns False when already running or still stopping."""
        with self._lock:
            if self.is_running:
                logger.warning(f"{self.name} worker is already running")
                return False
            if self._thread is not None and self._thread.is_alive():
                logger.warning(f"{self.name} worker is still stopping")
                return False
            self._stop_event = threading.Event()
            self._thread = threading.Thread(target=self._run, name=f"{self.name}-worker", daemon=True)
            self._thread.start()
        logger.info(f"{self.name} worker started on queue {self.queue_name}")
        return True

    def stop(self) -> None:
        """Ask the loop to exit after its current iteration."""
        if self._stop_event.is_set():
            return
        logger.info(f"Stopping {self.name} worker...")
        self._stop_event.set()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the loop thread; True when it has exited."""
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def status(self) -> dict[str, Any]:
        return {"running": self.is_running, "queue": self.queue_name}

    def _run(self) -> None:
        stop_event = self._stop_event
        while not stop_event.is_set():
            try:
                self.run_once()
            except TransientTransportError as exc:
                logger.warning(f"{self.name} worker: queue unavailable ({exc.message}), backing off {self.error_backoff}s")
                stop_event.wait(self.error_backoff)
                continue
            except Exception:
                logger.exception(f"{self.name} worker polling error, backing off {self.error_backoff}s")
                stop_event.wait(self.error_backoff)
                continue
            stop_event.wait(self.poll_interval)
        logger.info(f"{self.name} worker stopped")

    def run_once(self) -> list[MessageOutcome]:
        """One receive-process-ack iteration."""
        messages = self.transport.receive(
            self.queue_name,
            max_messages=self.max_messages,
            wait_time_seconds=self.wait_time,
            visibility_timeout=self.visibility_timeout,
        )
        if not messages:
            return []

        logger.info(f"{self.name} worker received {len(messages)} messages")
        with ThreadPoolExecutor(max_workers=len(messages), thread_name_prefix=self.name) as executor:
            return list(executor.map(self._process_message, messages))

    def parse(self, body: str) -> Any:
        message = parse_message_body(body)
        if not isinstance(message, self.message_model):
            raise MessageValidationError(
                f"{self.name} worker cannot handle {message.type} messages",
                details={"expected": getattr(self.message_model, "__name__", str(self.message_model))},
            )
        return message

    def _process_message(self, raw: QueueMessage) -> MessageOutcome:
        try:
            message = self.parse(raw.body)
        except MessageValidationError as exc:
            logger.error(f"Dropping invalid message {raw.message_id} on {self.queue_name}: {exc.message} {exc.details}")
            self._ack(raw)
            return MessageOutcome.REJECTED

        try:
            result = self.handle(message)
        except Exception as exc:
            return self._handle_failure(raw, message, exc)

        self._ack(raw)
        if result == HandlerResult.SKIPPED:
            return MessageOutcome.SKIPPED
        logger.info(f"Successfully processed {self.name} message for order: {message.order_id}")
        return MessageOutcome.PROCESSED

    def _handle_failure(self, raw: QueueMessage, message: Any, exc: Exception) -> MessageOutcome:
        reason = exc.message if isinstance(exc, DispatchError) else str(exc)
        retry_count = message.retry_count
        if retry_count < self.max_retries:
            logger.warning(
                f"Error processing {self.name} message for order {message.order_id}: {reason}. "
                f"Retrying (attempt {retry_count + 1}/{self.max_retries})"
            )
            self._ack(raw.with_retry_count(retry_count + 1), requeue=True)
            return MessageOutcome.RETRIED

        logger.error(f"Max retries exceeded for {self.name} message {raw.message_id} (order {message.order_id}): {reason}")
        self._ack(raw)
        return MessageOutcome.DROPPED

    def _ack(self, message: QueueMessage, requeue: bool = False) -> bool:
        # A failed ack leaves the lease to expire, so the message is redelivered.
        try:
            return self.transport.ack(message, requeue=requeue, delay_hint=self.retry_delay if requeue else None)
        except TransientTransportError as exc:
            logger.error(f"Failed to ack message {message.message_id} on {self.queue_name}: {exc.message}")
            return False
