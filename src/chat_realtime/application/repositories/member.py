from __future__ import annotations

from datetime import datetime
from typing import Protocol


class MemberReader(Protocol):
    async def is_member(self, conversation_id: str, identity_id: str) -> bool: ...

    async def list_member_ids(self, conversation_id: str) -> list[str]: ...


class MemberWriter(Protocol):
    async def add(
        self, conversation_id: str, identity_id: str, joined_at: datetime,
    ) -> None:
        """Add a member; adding an existing member is a no-op."""
        ...
