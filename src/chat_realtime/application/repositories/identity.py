from __future__ import annotations

from typing import Protocol

from chat_realtime.domain.entities.identity import Identity


class IdentityReader(Protocol):
    async def get_by_id(self, identity_id: str) -> Identity | None: ...


class IdentityWriter(Protocol):
    async def upsert(self, identity: Identity) -> None: ...
