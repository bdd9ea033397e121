"""Redis-backed queue transport.

Each queue uses four keys:

* ``<prefix>:<queue>:messages`` hash of message id -> JSON envelope
* ``<prefix>:<queue>:visible`` sorted set of message id scored by visible-at time
* ``<prefix>:<queue>:leases`` hash of message id -> current receipt handle
* ``<prefix>:<queue>:receives`` hash of message id -> delivery count

Leasing and acking run as Lua scripts so two consumers never claim the same
message inside one visibility window.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from typing import Any, Mapping, Sequence

import redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from ..config import settings
from ..exceptions import TransientTransportError
from .transport import QueueDepth, QueueMessage, encode_body

logger = logging.getLogger(__name__)

LEASE_SCRIPT = """
local ids = redis.call('ZRANGEBYSCORE', KEYS[1], '-inf', ARGV[1], 'LIMIT', 0, tonumber(ARGV[2]))
local out = {}
for i, id in ipairs(ids) do
  local envelope = redis.call('HGET', KEYS[2], id)
  if envelope then
    local handle = ARGV[4] .. ':' .. i
    redis.call('ZADD', KEYS[1], ARGV[3], id)
    redis.call('HSET', KEYS[3], id, handle)
    local count = redis.call('HINCRBY', KEYS[4], id, 1)
    table.insert(out, {id, envelope, handle, tostring(count)})
  else
    redis.call('ZREM', KEYS[1], id)
  end
end
return out
"""

ACK_SCRIPT = """
if redis.call('HGET', KEYS[3], ARGV[1]) ~= ARGV[2] then
  return 0
end
redis.call('HDEL', KEYS[3], ARGV[1])
if ARGV[3] == 'delete' then
  redis.call('ZREM', KEYS[1], ARGV[1])
  redis.call('HDEL', KEYS[2], ARGV[1])
  redis.call('HDEL', KEYS[4], ARGV[1])
  return 1
end
redis.call('HSET', KEYS[2], ARGV[1], ARGV[4])
if ARGV[5] ~= '' then
  redis.call('ZADD', KEYS[1], ARGV[5], ARGV[1])
end
return 1
"""


class RedisQueueTransport:
    def __init__(
        self,
        client: redis.Redis | None = None,
        url: str | None = None,
        prefix: str | None = None,
        visibility_timeout: float | None = None,
        poll_step_seconds: float = 1.0,
    ) -> None:
        self.client = client or redis.Redis.from_url(url or settings.redis_url, decode_responses=True)
        self.prefix = prefix or settings.redis_key_prefix
        self.visibility_timeout = (
            visibility_timeout if visibility_timeout is not None else settings.queue_visibility_timeout_seconds
        )
        self.poll_step_seconds = poll_step_seconds
        self._lease = self.client.register_script(LEASE_SCRIPT)
        self._ack = self.client.register_script(ACK_SCRIPT)

    def _keys(self, queue: str) -> list[str]:
        base = f"{self.prefix}:{queue}"
        return [f"{base}:visible", f"{base}:messages", f"{base}:leases", f"{base}:receives"]

    def send(self, queue: str, body: Any, attributes: Mapping[str, str] | None = None) -> str:
        message_id = uuid.uuid4().hex
        envelope = json.dumps(
            {"body": encode_body(body), "attributes": {key: str(value) for key, value in (attributes or {}).items()}}
        )
        visible, messages, _, _ = self._keys(queue)
        try:
            pipe = self.client.pipeline(transaction=True)
            pipe.hset(messages, message_id, envelope)
            pipe.zadd(visible, {message_id: time.time()})
            pipe.execute()
        except (RedisConnectionError, RedisTimeoutError) as exc:
            raise TransientTransportError(f"Failed to send message to {queue}: {exc}") from exc
        logger.debug("Message %s sent to queue %s", message_id, queue)
        return message_id

    def receive(
        self,
        queue: str,
        max_messages: int = 10,
        wait_time_seconds: float = 0,
        visibility_timeout: float | None = None,
    ) -> Sequence[QueueMessage]:
        visibility = self.visibility_timeout if visibility_timeout is None else visibility_timeout
        deadline = time.monotonic() + max(wait_time_seconds, 0)
        while True:
            now = time.time()
            try:
                rows = self._lease(
                    keys=self._keys(queue),
                    args=[now, max_messages, now + visibility, uuid.uuid4().hex],
                )
            except (RedisConnectionError, RedisTimeoutError) as exc:
                raise TransientTransportError(f"Failed to receive from {queue}: {exc}") from exc

            if rows or time.monotonic() >= deadline:
                return [self._to_message(queue, row) for row in rows]
            time.sleep(min(self.poll_step_seconds, max(deadline - time.monotonic(), 0)))

    def _to_message(self, queue: str, row: list[str]) -> QueueMessage:
        message_id, envelope, handle, count = row
        decoded = json.loads(envelope)
        return QueueMessage(
            message_id=message_id,
            queue=queue,
            body=decoded.get("body", ""),
            receipt_handle=handle,
            attributes=decoded.get("attributes") or {},
            receive_count=int(count),
        )

    def ack(self, message: QueueMessage, requeue: bool = False, delay_hint: float | None = None) -> bool:
        envelope = json.dumps({"body": message.body, "attributes": message.attributes})
        visible_at = "" if delay_hint is None else str(time.time() + delay_hint)
        try:
            acked = self._ack(
                keys=self._keys(message.queue),
                args=[message.message_id, message.receipt_handle, "requeue" if requeue else "delete", envelope, visible_at],
            )
        except (RedisConnectionError, RedisTimeoutError) as exc:
            raise TransientTransportError(f"Failed to ack {message.message_id}: {exc}") from exc
        if not acked:
            logger.warning("Ignoring ack for %s on %s: receipt handle is stale", message.message_id, message.queue)
        return bool(acked)

    def depth(self, queue: str) -> QueueDepth:
        visible, _, leases, _ = self._keys(queue)
        now = time.time()
        try:
            available = self.client.zcount(visible, "-inf", now)
            hidden = self.client.zcount(visible, f"({now}", "+inf")
            leased = self.client.hlen(leases)
        except (RedisConnectionError, RedisTimeoutError) as exc:
            raise TransientTransportError(f"Failed to read depth of {queue}: {exc}") from exc
        # Expired leases stay in the leases hash until the next receive or ack.
        in_flight = min(leased, hidden)
        return QueueDepth(available=available, in_flight=in_flight, delayed=hidden - in_flight)

    def purge(self, queue: str) -> int:
        _, messages, _, _ = self._keys(queue)
        try:
            count = self.client.hlen(messages)
            self.client.delete(*self._keys(queue))
        except (RedisConnectionError, RedisTimeoutError) as exc:
            raise TransientTransportError(f"Failed to purge {queue}: {exc}") from exc
        logger.info("Purged %s messages from queue %s", count, queue)
        return count

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except (RedisConnectionError, RedisTimeoutError):
            return False
