from __future__ import annotations

from typing import Protocol

from chat_realtime.domain.entities.conversation import Conversation


class ConversationReader(Protocol):
    async def get_by_id(self, conversation_id: str) -> Conversation | None: ...

    async def list_for_identity(self, identity_id: str) -> list[Conversation]:
        """Conversations the identity is a member of."""
        ...


class ConversationWriter(Protocol):
    async def create(self, conversation: Conversation) -> Conversation: ...
