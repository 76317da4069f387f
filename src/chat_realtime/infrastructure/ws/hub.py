"""Realtime components shared by every WebSocket connection of an instance."""
from __future__ import annotations

import logging
from dataclasses import dataclass

import redis.asyncio as aioredis

from chat_realtime.application.dto.events import OutboundEvent
from chat_realtime.application.dto.identity import identity_payload
from chat_realtime.config import Settings
from chat_realtime.domain.entities.identity import Identity
from chat_realtime.infrastructure.bus.redis_pubsub import RedisPubSubPublisher
from chat_realtime.infrastructure.state.redis_calls import RedisCallSessionStore
from chat_realtime.infrastructure.state.redis_presence import RedisOnlineDirectory
from chat_realtime.infrastructure.ws.presence import Connection, PresenceRegistry
from chat_realtime.infrastructure.ws.router import RoomRouter
from chat_realtime.services.call_service import CallRelay
from chat_realtime.services.typing_service import TypingTracker

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RealtimeHub:
    presence: PresenceRegistry
    router: RoomRouter
    typing: TypingTracker
    calls: CallRelay

    async def connect(self, connection: Connection, identity: Identity) -> None:
        """Register a connection and tell everyone who is online now."""
        await self.presence.register(connection, identity)
        await self.broadcast_online()

    async def disconnect(self, connection: Connection) -> Identity | None:
        """Tear down everything a closed connection owned. Safe to call twice."""
        await self.typing.drop_connection(connection.id)
        await self.router.leave_all(connection.id)
        departure = await self.presence.unregister(connection.id)
        if departure is None:
            return None

        identity = departure.identity
        await self.broadcast_online()
        if departure.last_connection:
            ended = await self.calls.drop_identity(identity.id)
            if ended:
                logger.info("Ended %d call(s) of disconnected %s", ended, identity.id)
        return identity

    async def broadcast_online(self) -> None:
        online = await self.presence.snapshot()
        await self.router.broadcast(
            OutboundEvent.USERS_UPDATE, [identity_payload(i) for i in online],
        )

    async def close(self) -> None:
        await self.typing.close()


def build_hub(settings: Settings, redis: aioredis.Redis | None = None) -> RealtimeHub:
    """Wire the hub for the configured fan-out backend.

    In redis mode, presence, call sessions and fan-out are shared through
    ``redis`` so that instances behind a load balancer act as one.
    """
    if settings.FANOUT_BACKEND == "redis":
        if redis is None:
            raise RuntimeError("FANOUT_BACKEND=redis needs a Redis client")
        presence = PresenceRegistry(RedisOnlineDirectory(redis))
        router = RoomRouter(
            presence,
            publisher=RedisPubSubPublisher(redis),
            channel=settings.REDIS_PUBSUB_CHANNEL,
        )
        calls = CallRelay(router, RedisCallSessionStore(redis))
    else:
        presence = PresenceRegistry()
        router = RoomRouter(presence)
        calls = CallRelay(router)

    typing = TypingTracker(router, timeout=settings.TYPING_TIMEOUT_SECONDS)
    return RealtimeHub(presence=presence, router=router, typing=typing, calls=calls)
