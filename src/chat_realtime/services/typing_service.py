"""Ephemeral typing indicators with an inactivity timeout."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from chat_realtime.application.dto.events import OutboundEvent
from chat_realtime.application.ports.fanout import Fanout
from chat_realtime.domain.entities.conversation import Conversation
from chat_realtime.domain.entities.identity import Identity

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 2.0


@dataclass(slots=True)
class _Armed:
    conversation: Conversation
    identity: Identity
    connection_id: str | None
    task: asyncio.Task[None]


class TypingTracker:
    """Broadcasts typing_show / typing_hide, one timer per (conversation, identity).

    Every ``start`` re-broadcasts typing_show and re-arms the timer. If no
    further ``start`` or ``stop`` arrives within the timeout, typing_hide is
    sent on the typist's behalf.
    """

    def __init__(self, fanout: Fanout, *, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self._fanout = fanout
        self._timeout = timeout
        self._armed: dict[tuple[str, str], _Armed] = {}

    @property
    def timeout(self) -> float:
        return self._timeout

    def is_typing(self, conversation_id: str, identity_id: str) -> bool:
        return (conversation_id, identity_id) in self._armed

    async def start(
        self,
        conversation: Conversation,
        identity: Identity,
        connection_id: str | None = None,
    ) -> None:
        key = (conversation.id, identity.id)
        self._disarm(key)
        await self._broadcast(OutboundEvent.TYPING_SHOW, conversation, identity)
        task = asyncio.create_task(self._expire(key), name=f"typing-{conversation.id}-{identity.id}")
        self._armed[key] = _Armed(conversation, identity, connection_id, task)

    async def stop(self, conversation: Conversation, identity: Identity) -> None:
        self._disarm((conversation.id, identity.id))
        await self._broadcast(OutboundEvent.TYPING_HIDE, conversation, identity)

    async def drop_connection(self, connection_id: str) -> None:
        """Hide every indicator started from a connection that went away."""
        owned = [
            (key, armed) for key, armed in self._armed.items()
            if armed.connection_id == connection_id
        ]
        for key, armed in owned:
            self._disarm(key)
            await self._broadcast(OutboundEvent.TYPING_HIDE, armed.conversation, armed.identity)

    async def close(self) -> None:
        for key in list(self._armed):
            self._disarm(key)

    def _disarm(self, key: tuple[str, str]) -> None:
        armed = self._armed.pop(key, None)
        if armed is not None and armed.task is not asyncio.current_task():
            armed.task.cancel()

    async def _expire(self, key: tuple[str, str]) -> None:
        await asyncio.sleep(self._timeout)
        armed = self._armed.get(key)
        if armed is None or armed.task is not asyncio.current_task():
            return
        del self._armed[key]
        try:
            await self._broadcast(OutboundEvent.TYPING_HIDE, armed.conversation, armed.identity)
        except Exception:
            logger.exception("Failed to broadcast typing timeout for %s", key)

    async def _broadcast(
        self,
        event: OutboundEvent,
        conversation: Conversation,
        identity: Identity,
    ) -> None:
        await self._fanout.dispatch(
            conversation,
            event,
            {
                "conversationId": conversation.id,
                "userId": identity.id,
                "username": identity.username,
            },
            exclude_identity=identity.id,
        )
