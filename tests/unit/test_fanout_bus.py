from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest

from chat_realtime.infrastructure.bus.redis_pubsub import (
    RedisPubSubPublisher,
    RedisPubSubSubscriber,
)
from chat_realtime.infrastructure.bus.serializer import deserialize_event, serialize_event
from chat_realtime.infrastructure.ws.router import Route


class _FakePubSub:
    def __init__(self, messages: list[dict[str, Any]]) -> None:
        self._messages = messages
        self.subscribed: list[str] = []
        self.closed = False

    async def subscribe(self, channel: str) -> None:
        self.subscribed.append(channel)

    async def listen(self):
        for message in self._messages:
            yield message
        await asyncio.Event().wait()

    async def aclose(self) -> None:
        self.closed = True


class _FakeRedis:
    def __init__(self, messages: list[dict[str, Any]] | None = None) -> None:
        self.published: list[tuple[str, str]] = []
        self.pubsub_obj = _FakePubSub(messages or [])

    async def publish(self, channel: str, raw: str) -> int:
        self.published.append((channel, raw))
        return 1

    def pubsub(self, **kwargs: Any) -> _FakePubSub:
        return self.pubsub_obj


def test_envelope_carries_event_and_data():
    raw = serialize_event("receive_message", {"data": {"id": "m1"}, "route": {"room_id": "g1"}})
    assert json.loads(raw)["event"] == "receive_message"
    event_type, data = deserialize_event(raw)
    assert event_type == "receive_message"
    assert data["route"] == {"room_id": "g1"}


@pytest.mark.parametrize("raw", ['"just a string"', '{"data": {}}', '{"event": "x", "data": []}'])
def test_malformed_envelopes_are_rejected(raw):
    with pytest.raises(ValueError):
        deserialize_event(raw)


@pytest.mark.asyncio
async def test_publisher_sends_routed_event_on_channel():
    redis = _FakeRedis()
    publisher = RedisPubSubPublisher(redis)  # type: ignore[arg-type]
    route = Route(room_id="u1_u2", identity_ids=("u1", "u2"))

    await publisher.publish(
        "chat.fanout",
        {"event_type": "typing_show", "data": {"userId": "u1"}, "route": route.to_dict()},
    )

    channel, raw = redis.published[0]
    assert channel == "chat.fanout"
    event_type, data = deserialize_event(raw)
    assert event_type == "typing_show"
    assert Route.from_dict(data["route"]) == route


@pytest.mark.asyncio
async def test_subscriber_delivers_and_survives_bad_envelopes():
    good = serialize_event("pong", {"data": {}, "route": {"everyone": True}})
    redis = _FakeRedis([
        {"type": "message", "data": "not json"},
        {"type": "message", "data": good},
    ])
    received: list[tuple[str, dict[str, Any]]] = []
    delivered = asyncio.Event()

    async def _callback(event_type: str, data: dict[str, Any]) -> None:
        received.append((event_type, data))
        delivered.set()

    subscriber = RedisPubSubSubscriber(redis, "chat.fanout", _callback)  # type: ignore[arg-type]
    await subscriber.start()
    await asyncio.wait_for(delivered.wait(), timeout=1)
    await subscriber.stop()

    assert redis.pubsub_obj.subscribed == ["chat.fanout"]
    assert received == [("pong", {"data": {}, "route": {"everyone": True}})]
    assert redis.pubsub_obj.closed
