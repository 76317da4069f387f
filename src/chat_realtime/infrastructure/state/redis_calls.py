"""Call sessions shared by every instance, kept in Redis."""
from __future__ import annotations

import json
from datetime import datetime

import redis.asyncio as aioredis

from chat_realtime.domain.entities.call import CallSession
from chat_realtime.domain.value_objects.enums import CallState, MediaKind


class RedisCallSessionStore:
    """Implements application.ports.calls.CallSessionStore.

    One key per unordered pair (created with NX so two instances cannot both
    start a call for the same pair) plus a set of pair keys per identity.
    """

    def __init__(
        self,
        redis: aioredis.Redis,
        prefix: str = "chat:call",
        ttl_seconds: int = 6 * 3600,
    ) -> None:
        self._redis = redis
        self._prefix = prefix
        self._ttl = ttl_seconds

    def _key(self, a: str, b: str) -> str:
        low, high = sorted((a, b))
        return f"{self._prefix}:{low}:{high}"

    def _index_key(self, identity_id: str) -> str:
        return f"{self._prefix}:of:{identity_id}"

    async def get(self, a: str, b: str) -> CallSession | None:
        raw = await self._redis.get(self._key(a, b))
        return _decode(raw) if raw else None

    async def create(self, session: CallSession) -> bool:
        key = self._key(session.caller_id, session.callee_id)
        stored = await self._redis.set(key, _encode(session), nx=True, ex=self._ttl)
        if not stored:
            return False
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.sadd(self._index_key(session.caller_id), key)
            pipe.sadd(self._index_key(session.callee_id), key)
            await pipe.execute()
        return True

    async def save(self, session: CallSession) -> None:
        key = self._key(session.caller_id, session.callee_id)
        await self._redis.set(key, _encode(session), ex=self._ttl)

    async def delete(self, a: str, b: str) -> None:
        key = self._key(a, b)
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.delete(key)
            pipe.srem(self._index_key(a), key)
            pipe.srem(self._index_key(b), key)
            await pipe.execute()

    async def sessions_of(self, identity_id: str) -> list[CallSession]:
        keys = await self._redis.smembers(self._index_key(identity_id))
        sessions: list[CallSession] = []
        for key in keys:
            raw = await self._redis.get(key)
            if raw:
                sessions.append(_decode(raw))
            else:
                await self._redis.srem(self._index_key(identity_id), key)
        return sessions


def _encode(session: CallSession) -> str:
    return json.dumps(
        {
            "caller_id": session.caller_id,
            "callee_id": session.callee_id,
            "media": str(session.media),
            "state": str(session.state),
            "started_at": session.started_at.isoformat() if session.started_at else None,
        }
    )


def _decode(raw: str | bytes) -> CallSession:
    data = json.loads(raw)
    started_at = data.get("started_at")
    return CallSession(
        caller_id=data["caller_id"],
        callee_id=data["callee_id"],
        media=MediaKind(data["media"]),
        state=CallState(data["state"]),
        started_at=datetime.fromisoformat(started_at) if started_at else None,
    )
