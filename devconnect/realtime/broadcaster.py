"""
Event broadcaster.

Fans typed events out to user rooms (`notify_user`) or to every open
connection (`broadcast_all`). Delivery is best-effort: an event for a user
with no joined connection is dropped, a failed send is logged and counted,
and nothing here ever raises into the HTTP request that triggered it. The
REST endpoints stay the source of truth; clients treat events as hints to
refetch.

Two backends:
  LocalBroadcaster: delivers straight to this process's registry.
  RedisBroadcaster: publishes to a Redis channel; every process runs
                    `listen()` and delivers what it receives locally.
"""
import abc
import asyncio
import json
import logging
from typing import Any, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from devconnect.config import settings
from devconnect.errors import TransportError
from devconnect.realtime.registry import (
    Connection,
    ConnectionRegistry,
    InMemoryConnectionRegistry,
)
from devconnect.telemetry import REALTIME_EVENTS_TOTAL

logger = logging.getLogger(__name__)

# Server → client event names
EVENT_JOIN_ACK = "joinAcknowledged"
EVENT_NEW_NOTIFICATION = "newNotification"
EVENT_NOTIFICATION = "notification"
EVENT_FOLLOW_UPDATE = "followUpdate"
EVENT_PING = "ping"


async def _deliver(connections: list[Connection], event: str, payload: Any) -> int:
    if not connections:
        REALTIME_EVENTS_TOTAL.labels(event=event, outcome="dropped").inc()
        return 0

    delivered = 0
    for connection in connections:
        try:
            await connection.send(event, payload)
            delivered += 1
        except TransportError as exc:
            REALTIME_EVENTS_TOTAL.labels(event=event, outcome="failed").inc()
            logger.warning("Dropping %s for %r: %s", event, connection, exc)
    if delivered:
        REALTIME_EVENTS_TOTAL.labels(event=event, outcome="delivered").inc(delivered)
    return delivered


class Broadcaster(abc.ABC):
    def __init__(self, registry: ConnectionRegistry) -> None:
        self.registry = registry

    @abc.abstractmethod
    async def notify_user(self, user_id: int | str, event: str, payload: Any) -> None:
        """Push `event` to every connection joined to the user's room."""

    @abc.abstractmethod
    async def broadcast_all(self, event: str, payload: Any) -> None:
        """Push `event` to every connected client, joined or not."""

    async def deliver_local(self, user_id: Optional[int | str], event: str, payload: Any) -> int:
        if user_id is None:
            return await _deliver(self.registry.all_connections(), event, payload)
        delivered = await _deliver(self.registry.connections_for(user_id), event, payload)
        if not delivered:
            logger.debug("No live connection for user %s, %s not pushed", user_id, event)
        return delivered

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass


class LocalBroadcaster(Broadcaster):
    async def notify_user(self, user_id: int | str, event: str, payload: Any) -> None:
        await self.deliver_local(user_id, event, payload)

    async def broadcast_all(self, event: str, payload: Any) -> None:
        await self.deliver_local(None, event, payload)


class RedisBroadcaster(Broadcaster):
    def __init__(
        self,
        registry: ConnectionRegistry,
        redis: aioredis.Redis,
        channel: Optional[str] = None,
        retry_delay: Optional[float] = None,
    ) -> None:
        super().__init__(registry)
        self.redis = redis
        self.channel = channel or settings.redis_events_channel
        self.retry_delay = settings.redis_retry_delay if retry_delay is None else retry_delay
        self._listener: Optional[asyncio.Task] = None

    async def _publish(self, message: dict) -> None:
        try:
            await self.redis.publish(self.channel, json.dumps(message, default=str))
        except Exception as exc:
            REALTIME_EVENTS_TOTAL.labels(event=message["event"], outcome="failed").inc()
            logger.warning("Redis publish of %s failed: %s", message["event"], exc)

    async def notify_user(self, user_id: int | str, event: str, payload: Any) -> None:
        await self._publish({"userId": str(user_id), "event": event, "data": payload})

    async def broadcast_all(self, event: str, payload: Any) -> None:
        await self._publish({"userId": None, "event": event, "data": payload})

    async def handle_message(self, raw: str) -> None:
        try:
            message = json.loads(raw)
            event = message["event"]
        except (ValueError, KeyError, TypeError):
            logger.warning("Malformed relay message: %r", raw)
            return
        await self.deliver_local(message.get("userId"), event, message.get("data"))

    async def _relay(self) -> None:
        pubsub = self.redis.pubsub()
        await pubsub.subscribe(self.channel)
        logger.info("Relaying real-time events from Redis channel '%s'", self.channel)
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                await self.handle_message(message["data"])
        finally:
            try:
                await pubsub.unsubscribe(self.channel)
                await pubsub.aclose()
            except (RedisError, OSError) as exc:
                logger.debug("Redis pubsub cleanup failed: %s", exc)

    async def listen(self) -> None:
        """Relay until cancelled, resubscribing whenever the subscription drops."""
        while True:
            try:
                await self._relay()
                logger.warning("Redis subscription to '%s' ended, resubscribing", self.channel)
            except (RedisError, OSError) as exc:
                REALTIME_EVENTS_TOTAL.labels(event="relay", outcome="failed").inc()
                logger.warning(
                    "Redis relay on '%s' failed: %s; retrying in %.1fs",
                    self.channel,
                    exc,
                    self.retry_delay,
                )
            await asyncio.sleep(self.retry_delay)

    def _listener_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Redis relay stopped; events from other processes are no longer delivered",
                exc_info=exc,
            )

    async def start(self) -> None:
        self._listener = asyncio.create_task(self.listen())
        self._listener.add_done_callback(self._listener_done)

    async def stop(self) -> None:
        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            self._listener = None


# Process-wide defaults; main.py swaps in the Redis backend when configured.
registry: ConnectionRegistry = InMemoryConnectionRegistry()
_broadcaster: Broadcaster = LocalBroadcaster(registry)


def set_broadcaster(broadcaster: Broadcaster) -> None:
    global _broadcaster
    _broadcaster = broadcaster


def get_broadcaster() -> Broadcaster:
    """FastAPI dependency returning the active broadcaster."""
    return _broadcaster
