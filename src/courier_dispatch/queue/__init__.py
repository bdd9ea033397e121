"""Queue transports and the order message publisher."""

from __future__ import annotations

from ..config import Settings, settings as default_settings
from .memory import InMemoryQueueTransport
from .publisher import OrderEventPublisher
from .transport import QueueDepth, QueueMessage, QueueTransport


def build_queue_transport(config: Settings | None = None) -> QueueTransport:
    config = config or default_settings
    if config.queue_backend == "redis":
        from .redis_transport import RedisQueueTransport

        return RedisQueueTransport(
            url=config.redis_url,
            prefix=config.redis_key_prefix,
            visibility_timeout=config.queue_visibility_timeout_seconds,
        )
    return InMemoryQueueTransport(visibility_timeout=config.queue_visibility_timeout_seconds)


__all__ = [
    "InMemoryQueueTransport",
    "OrderEventPublisher",
    "QueueDepth",
    "QueueMessage",
    "QueueTransport",
    "build_queue_transport",
]
