from __future__ import annotations

from typing import Protocol

from chat_realtime.domain.entities.identity import Identity


class OnlineDirectory(Protocol):
    """Reference-counted set of online identities.

    Each live connection holds one reference; an identity is online while
    it has at least one, on any instance sharing the directory.
    """

    async def add(self, identity: Identity) -> None: ...

    async def remove(self, identity_id: str) -> int:
        """Drop one reference. Return how many connections the identity still has."""
        ...

    async def snapshot(self) -> list[Identity]: ...
