from __future__ import annotations

from typing import Protocol

from chat_realtime.domain.entities.call import CallSession


class CallSessionStore(Protocol):
    """Call sessions keyed by the unordered pair of their two parties."""

    async def get(self, a: str, b: str) -> CallSession | None: ...

    async def create(self, session: CallSession) -> bool:
        """Store ``session`` unless the pair already has one. Return True if stored."""
        ...

    async def save(self, session: CallSession) -> None: ...

    async def delete(self, a: str, b: str) -> None: ...

    async def sessions_of(self, identity_id: str) -> list[CallSession]: ...
