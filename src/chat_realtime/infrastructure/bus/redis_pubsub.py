"""Cross-instance fan-out over Redis Pub/Sub.

Every instance publishes routed events on one channel and every instance,
the publisher included, delivers what it hears to its own connections.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine

import redis.asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError

from chat_realtime.infrastructure.bus.serializer import deserialize_event, serialize_event

logger = logging.getLogger(__name__)

RESUBSCRIBE_DELAY_SECONDS = 1.0


class RedisPubSubPublisher:
    """EventPublisher backed by PUBLISH."""

    def __init__(self, redis: aioredis.Redis) -> None:
        self._redis = redis

    async def publish(self, channel: str, payload: dict[str, Any]) -> None:
        event_type = payload.get("event_type", "unknown")
        receivers = await self._redis.publish(channel, serialize_event(event_type, payload))
        if not receivers:
            logger.warning("Fan-out %s on %s reached no instance", event_type, channel)


DeliverCallback = Callable[[str, dict[str, Any]], Coroutine[Any, Any, None]]


class RedisPubSubSubscriber:
    """Feeds every envelope published on ``channel`` to ``callback``.

    ``start`` returns once the subscription is live. A dropped Redis
    connection is re-subscribed after a short pause; envelopes published
    in between are lost, like any Pub/Sub message with no listener.
    """

    def __init__(
        self,
        redis: aioredis.Redis,
        channel: str,
        callback: DeliverCallback,
        *,
        resubscribe_delay: float = RESUBSCRIBE_DELAY_SECONDS,
    ) -> None:
        self._redis = redis
        self._channel = channel
        self._callback = callback
        self._resubscribe_delay = resubscribe_delay
        self._subscribed = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        self._task = asyncio.create_task(self._run(), name=f"fanout-subscriber-{self._channel}")
        await self._subscribed.wait()
        logger.info("Listening for fan-out on channel=%s", self._channel)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Fan-out subscriber on channel=%s stopped", self._channel)

    async def _run(self) -> None:
        while True:
            try:
                await self._listen()
            except RedisConnectionError:
                self._subscribed.clear()
                logger.warning(
                    "Lost fan-out subscription on %s, retrying in %.1fs",
                    self._channel, self._resubscribe_delay,
                )
                await asyncio.sleep(self._resubscribe_delay)

    async def _listen(self) -> None:
        pubsub = self._redis.pubsub(ignore_subscribe_messages=True)
        try:
            await pubsub.subscribe(self._channel)
            self._subscribed.set()
            async for message in pubsub.listen():
                if message is None or message.get("type") != "message":
                    continue
                await self._deliver(message["data"])
        finally:
            await pubsub.aclose()

    async def _deliver(self, raw: str | bytes) -> None:
        try:
            event_type, data = deserialize_event(raw)
        except ValueError:
            logger.warning("Skipping malformed fan-out envelope on %s", self._channel)
            return
        try:
            await self._callback(event_type, data)
        except Exception:
            logger.exception("Failed to deliver fan-out %s", event_type)
