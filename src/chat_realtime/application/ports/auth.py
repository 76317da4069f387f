from __future__ import annotations

from typing import Protocol

from chat_realtime.domain.entities.identity import Identity


class IdentityVerifier(Protocol):
    async def verify(self, token: str) -> Identity:
        """Return the identity behind ``token`` or raise UnauthenticatedError."""
        ...
