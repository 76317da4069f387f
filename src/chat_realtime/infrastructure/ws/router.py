"""Room membership and fan-out of events to live connections."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass
from typing import Any, Iterable

from chat_realtime.application.ports.bus import EventPublisher
from chat_realtime.domain.entities.conversation import Conversation
from chat_realtime.infrastructure.ws.presence import Connection, PresenceRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Route:
    """Who an event is for. Resolved against local connections on delivery."""

    everyone: bool = False
    room_id: str | None = None
    identity_ids: tuple[str, ...] = ()
    exclude_identity: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["identity_ids"] = list(self.identity_ids)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Route:
        return cls(
            everyone=bool(data.get("everyone", False)),
            room_id=data.get("room_id"),
            identity_ids=tuple(data.get("identity_ids") or ()),
            exclude_identity=data.get("exclude_identity"),
        )


class RoomRouter:
    """Tracks which connections joined which conversation and delivers events.

    Joining needs no membership check; callers are expected to be authorized
    already. Every delivery reaches each connection at most once, however
    many of the route's targets it matches.

    With a publisher configured, routes are published on the bus instead of
    delivered directly, and every instance (this one included) delivers them
    to its own connections via ``deliver_envelope``.
    """

    def __init__(
        self,
        presence: PresenceRegistry,
        publisher: EventPublisher | None = None,
        channel: str = "chat.fanout",
    ) -> None:
        self._presence = presence
        self._publisher = publisher
        self._channel = channel
        self._rooms: dict[str, set[str]] = {}
        self._joined: dict[str, set[str]] = {}
        self._lock = asyncio.Lock()

    async def join(self, connection_id: str, conversation_id: str) -> bool:
        """Add a connection to a room. Return False if it was already there."""
        async with self._lock:
            members = self._rooms.setdefault(conversation_id, set())
            if connection_id in members:
                return False
            members.add(connection_id)
            self._joined.setdefault(connection_id, set()).add(conversation_id)
        return True

    async def leave(self, connection_id: str, conversation_id: str) -> None:
        async with self._lock:
            self._discard(connection_id, conversation_id)
            joined = self._joined.get(connection_id)
            if joined is not None:
                joined.discard(conversation_id)
                if not joined:
                    del self._joined[connection_id]

    async def leave_all(self, connection_id: str) -> None:
        async with self._lock:
            for conversation_id in self._joined.pop(connection_id, set()):
                self._discard(connection_id, conversation_id)

    def _discard(self, connection_id: str, conversation_id: str) -> None:
        members = self._rooms.get(conversation_id)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            del self._rooms[conversation_id]

    def room_members(self, conversation_id: str) -> set[str]:
        return set(self._rooms.get(conversation_id, set()))

    def rooms_of(self, connection_id: str) -> set[str]:
        return set(self._joined.get(connection_id, set()))

    async def dispatch(
        self,
        conversation: Conversation,
        event_type: str,
        data: dict[str, Any],
        *,
        exclude_identity: str | None = None,
    ) -> None:
        """Deliver an event to a conversation's audience.

        The global conversation reaches every connection. Private
        conversations also reach both peers' personal channels, so a peer
        that never joined the room still gets the event.
        """
        if conversation.is_global:
            route = Route(everyone=True, exclude_identity=exclude_identity)
        else:
            route = Route(
                room_id=conversation.id,
                identity_ids=conversation.personal_targets(),
                exclude_identity=exclude_identity,
            )
        await self._route(route, event_type, data)

    async def dispatch_to(
        self,
        room_id: str,
        identity_ids: Iterable[str],
        event_type: str,
        data: dict[str, Any],
    ) -> None:
        await self._route(
            Route(room_id=room_id, identity_ids=tuple(identity_ids)), event_type, data,
        )

    async def send_to_identity(
        self, identity_id: str, event_type: str, data: dict[str, Any],
    ) -> None:
        await self._route(Route(identity_ids=(identity_id,)), event_type, data)

    async def broadcast(self, event_type: str, data: Any) -> None:
        await self._route(Route(everyone=True), event_type, data)

    async def _route(self, route: Route, event_type: str, data: Any) -> None:
        if self._publisher is None:
            await self.deliver(route, event_type, data)
            return
        await self._publisher.publish(
            self._channel,
            {"event_type": event_type, "data": data, "route": route.to_dict()},
        )

    async def deliver_envelope(self, event_type: str, data: dict[str, Any]) -> None:
        """Bus callback: deliver a published route to local connections."""
        route = Route.from_dict(data.get("route") or {})
        await self.deliver(route, event_type, data.get("data"))

    async def deliver(self, route: Route, event_type: str, data: Any) -> int:
        """Send to every local connection the route matches. Return the count."""
        targets = self._resolve(route)
        dead: list[str] = []
        for conn in targets:
            if not await conn.send(event_type, data):
                dead.append(conn.id)
        for connection_id in dead:
            await self.leave_all(connection_id)
        return len(targets) - len(dead)

    def _resolve(self, route: Route) -> list[Connection]:
        targets: dict[str, Connection] = {}
        if route.everyone:
            for conn in self._presence.connections():
                targets[conn.id] = conn
        else:
            if route.room_id is not None:
                for connection_id in list(self._rooms.get(route.room_id, ())):
                    conn = self._presence.connection(connection_id)
                    if conn is not None:
                        targets.setdefault(conn.id, conn)
            for identity_id in route.identity_ids:
                for conn in self._presence.personal_channel(identity_id):
                    targets.setdefault(conn.id, conn)

        if route.exclude_identity is not None:
            for connection_id in list(targets):
                identity = self._presence.identity_of(connection_id)
                if identity is not None and identity.id == route.exclude_identity:
                    del targets[connection_id]
        return list(targets.values())
