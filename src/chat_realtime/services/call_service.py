"""Call signaling relay.

Session descriptions and ICE candidates are forwarded verbatim to the
other party's personal channel; this module only tracks where each pair
stands in the invite → answer → end handshake.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

from chat_realtime.application.dto.events import OutboundEvent
from chat_realtime.application.ports.calls import CallSessionStore
from chat_realtime.application.ports.fanout import PersonalChannel
from chat_realtime.domain.entities.call import CallSession
from chat_realtime.domain.entities.identity import Identity
from chat_realtime.domain.value_objects.enums import CallState, MediaKind

logger = logging.getLogger(__name__)

BUSY_REASON = "busy"


class InMemoryCallSessionStore:
    """Process-local CallSessionStore."""

    def __init__(self) -> None:
        self._sessions: dict[tuple[str, str], CallSession] = {}

    async def get(self, a: str, b: str) -> CallSession | None:
        return self._sessions.get(_pair(a, b))

    async def create(self, session: CallSession) -> bool:
        if session.pair in self._sessions:
            return False
        self._sessions[session.pair] = session
        return True

    async def save(self, session: CallSession) -> None:
        self._sessions[session.pair] = session

    async def delete(self, a: str, b: str) -> None:
        self._sessions.pop(_pair(a, b), None)

    async def sessions_of(self, identity_id: str) -> list[CallSession]:
        return [s for s in self._sessions.values() if s.involves(identity_id)]


def _pair(a: str, b: str) -> tuple[str, str]:
    low, high = sorted((a, b))
    return low, high


class CallRelay:
    """One call session per pair of identities.

    A second invite while the pair already has an invited or active session
    is refused with call_rejected (reason "busy") sent back to the inviter.
    Signaling that does not fit the pair's current state is dropped.
    """

    def __init__(
        self,
        channel: PersonalChannel,
        store: CallSessionStore | None = None,
    ) -> None:
        self._channel = channel
        self._store: CallSessionStore = store or InMemoryCallSessionStore()
        self._lock = asyncio.Lock()

    async def session(self, a: str, b: str) -> CallSession | None:
        return await self._store.get(a, b)

    async def invite(
        self,
        caller: Identity,
        callee_id: str,
        offer: Any,
        is_video: bool,
    ) -> bool:
        if not callee_id or callee_id == caller.id:
            return False

        session = CallSession(
            caller_id=caller.id,
            callee_id=callee_id,
            media=MediaKind.VIDEO if is_video else MediaKind.AUDIO,
            started_at=datetime.now(timezone.utc),
        )
        async with self._lock:
            created = await self._store.create(session)

        if not created:
            logger.debug("Call invite %s -> %s refused: pair busy", caller.id, callee_id)
            await self._channel.send_to_identity(
                caller.id,
                OutboundEvent.CALL_REJECTED,
                {"responderId": callee_id, "reason": BUSY_REASON},
            )
            return False

        await self._channel.send_to_identity(
            callee_id,
            OutboundEvent.CALL_INCOMING,
            {
                "callerId": caller.id,
                "callerName": caller.username,
                "callerAvatar": caller.avatar,
                "offer": offer,
                "isVideo": is_video,
            },
        )
        return True

    async def answer(self, callee: Identity, caller_id: str, answer: Any) -> bool:
        async with self._lock:
            session = await self._store.get(caller_id, callee.id)
            if (
                session is None
                or session.state != CallState.INVITED
                or session.callee_id != callee.id
            ):
                logger.debug("Dropping call answer %s -> %s: no pending invite", callee.id, caller_id)
                return False
            await self._store.save(session.activate())

        await self._channel.send_to_identity(
            caller_id,
            OutboundEvent.CALL_ACCEPTED,
            {"responderId": callee.id, "answer": answer},
        )
        return True

    async def ice_candidate(self, sender: Identity, target_id: str, candidate: Any) -> bool:
        session = await self._store.get(sender.id, target_id)
        if session is None or session.state not in (CallState.INVITED, CallState.ACTIVE):
            logger.debug("Dropping ICE candidate %s -> %s: no session", sender.id, target_id)
            return False

        await self._channel.send_to_identity(
            target_id,
            OutboundEvent.CALL_ICE_CANDIDATE,
            {"senderId": sender.id, "candidate": candidate},
        )
        return True

    async def reject(self, sender: Identity, target_id: str) -> bool:
        async with self._lock:
            session = await self._store.get(sender.id, target_id)
            if session is None or session.state != CallState.INVITED:
                return False
            await self._store.delete(sender.id, target_id)

        await self._channel.send_to_identity(
            target_id, OutboundEvent.CALL_REJECTED, {"responderId": sender.id},
        )
        return True

    async def end(self, sender: Identity, target_id: str) -> bool:
        async with self._lock:
            session = await self._store.get(sender.id, target_id)
            if session is None:
                return False
            await self._store.delete(sender.id, target_id)

        await self._channel.send_to_identity(
            target_id, OutboundEvent.CALL_ENDED, {"senderId": sender.id},
        )
        return True

    async def drop_identity(self, identity_id: str) -> int:
        """End every call of an identity that is no longer connected."""
        async with self._lock:
            sessions = await self._store.sessions_of(identity_id)
            for session in sessions:
                await self._store.delete(session.caller_id, session.callee_id)

        for session in sessions:
            await self._channel.send_to_identity(
                session.peer_of(identity_id),
                OutboundEvent.CALL_ENDED,
                {"senderId": identity_id},
            )
        return len(sessions)
