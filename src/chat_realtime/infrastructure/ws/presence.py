"""Which connections are live, and whose they are."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from chat_realtime.application.exceptions import UnauthenticatedError
from chat_realtime.application.ports.presence import OnlineDirectory
from chat_realtime.domain.entities.identity import Identity

logger = logging.getLogger(__name__)


class Connection(Protocol):
    id: str

    async def send(self, event_type: str, data: Any) -> bool: ...


class InMemoryOnlineDirectory:
    """Process-local OnlineDirectory."""

    def __init__(self) -> None:
        self._counts: dict[str, int] = {}
        self._profiles: dict[str, Identity] = {}

    async def add(self, identity: Identity) -> None:
        self._counts[identity.id] = self._counts.get(identity.id, 0) + 1
        self._profiles[identity.id] = identity

    async def remove(self, identity_id: str) -> int:
        count = self._counts.get(identity_id, 0) - 1
        if count > 0:
            self._counts[identity_id] = count
            return count
        self._counts.pop(identity_id, None)
        self._profiles.pop(identity_id, None)
        return 0

    async def snapshot(self) -> list[Identity]:
        return sorted(self._profiles.values(), key=lambda i: (i.username.lower(), i.id))


@dataclass(frozen=True, slots=True)
class Departure:
    """A connection that went away, and how many its identity still has."""

    identity: Identity
    remaining: int

    @property
    def last_connection(self) -> bool:
        return self.remaining <= 0


class PresenceRegistry:
    """Binds each live connection to exactly one verified identity.

    The connections of an identity form its personal channel, which is how
    targeted events (call signaling, receipts) reach every device of a user.
    """

    def __init__(self, directory: OnlineDirectory | None = None) -> None:
        self._connections: dict[str, Connection] = {}
        self._identities: dict[str, Identity] = {}
        self._personal: dict[str, dict[str, Connection]] = {}
        self._directory: OnlineDirectory = directory or InMemoryOnlineDirectory()
        self._lock = asyncio.Lock()

    async def register(self, connection: Connection, identity: Identity | None) -> None:
        if identity is None or not identity.id:
            raise UnauthenticatedError("A verified identity is required")

        async with self._lock:
            if connection.id in self._connections:
                return
            self._connections[connection.id] = connection
            self._identities[connection.id] = identity
            self._personal.setdefault(identity.id, {})[connection.id] = connection
            await self._directory.add(identity)
        logger.debug(
            "Registered %s for %s (connections=%d)",
            connection.id, identity.id, len(self._connections),
        )

    async def unregister(self, connection_id: str) -> Departure | None:
        """Remove a connection. Return None if it was not registered.

        ``remaining`` counts the identity's connections on every instance
        sharing the online directory, not only this one.
        """
        async with self._lock:
            if self._connections.pop(connection_id, None) is None:
                return None
            identity = self._identities.pop(connection_id)
            channel = self._personal.get(identity.id)
            if channel is not None:
                channel.pop(connection_id, None)
                if not channel:
                    del self._personal[identity.id]
            remaining = await self._directory.remove(identity.id)
        logger.debug(
            "Unregistered %s for %s (remaining=%d)", connection_id, identity.id, remaining,
        )
        return Departure(identity, remaining)

    async def snapshot(self) -> list[Identity]:
        """Distinct online identities."""
        return await self._directory.snapshot()

    def identity_of(self, connection_id: str) -> Identity | None:
        return self._identities.get(connection_id)

    def connection(self, connection_id: str) -> Connection | None:
        return self._connections.get(connection_id)

    def personal_channel(self, identity_id: str) -> list[Connection]:
        return list(self._personal.get(identity_id, {}).values())

    def connections(self) -> list[Connection]:
        return list(self._connections.values())

    def __len__(self) -> int:
        return len(self._connections)
