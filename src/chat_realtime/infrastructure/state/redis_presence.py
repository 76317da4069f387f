"""Online identities shared by every instance, kept in Redis hashes."""
from __future__ import annotations

import json
import logging

import redis.asyncio as aioredis

from chat_realtime.domain.entities.identity import Identity

logger = logging.getLogger(__name__)


class RedisOnlineDirectory:
    """Implements application.ports.presence.OnlineDirectory.

    ``<prefix>:counts`` holds a live-connection count per identity and
    ``<prefix>:profiles`` the identity itself.
    """

    def __init__(self, redis: aioredis.Redis, prefix: str = "chat:presence") -> None:
        self._redis = redis
        self._counts_key = f"{prefix}:counts"
        self._profiles_key = f"{prefix}:profiles"

    async def add(self, identity: Identity) -> None:
        profile = json.dumps(
            {"id": identity.id, "username": identity.username, "avatar": identity.avatar}
        )
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.hincrby(self._counts_key, identity.id, 1)
            pipe.hset(self._profiles_key, identity.id, profile)
            await pipe.execute()

    async def remove(self, identity_id: str) -> int:
        remaining = await self._redis.hincrby(self._counts_key, identity_id, -1)
        if remaining > 0:
            return remaining
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.hdel(self._counts_key, identity_id)
            pipe.hdel(self._profiles_key, identity_id)
            await pipe.execute()
        return 0

    async def snapshot(self) -> list[Identity]:
        raw = await self._redis.hgetall(self._profiles_key)
        identities: list[Identity] = []
        for value in raw.values():
            try:
                identities.append(Identity(**json.loads(value)))
            except (TypeError, ValueError):
                logger.warning("Skipping malformed presence profile: %r", value)
        return sorted(identities, key=lambda i: (i.username.lower(), i.id))
