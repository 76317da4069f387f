from __future__ import annotations

from typing import Protocol

from chat_realtime.domain.entities.message import Message, Reaction
from chat_realtime.domain.value_objects.enums import MessageStatus


class MessageReader(Protocol):
    async def get_by_id(self, message_id: str) -> Message | None: ...

    async def list_messages(
        self,
        conversation_id: str,
        *,
        cursor: str | None = None,
        limit: int = 50,
    ) -> list[Message]:
        """Oldest first, strictly after ``cursor``."""
        ...

    async def list_visible(self, identity_id: str, *, limit: int = 200) -> list[Message]:
        """Latest messages of the global room and the identity's conversations, oldest first."""
        ...


class MessageWriter(Protocol):
    async def create_if_not_exists(self, message: Message) -> tuple[Message, bool]:
        """Insert message. Return (message, created). On id conflict → return existing."""
        ...

    async def get_for_update(self, message_id: str) -> Message | None:
        """Fetch a message and lock its row until commit."""
        ...

    async def advance_status(self, message_id: str, status: MessageStatus) -> bool:
        """Move the message forward to ``status``.

        Return False if it was already there or later, or is deleted.
        """
        ...

    async def mark_read(self, conversation_id: str, reader_id: str) -> int:
        """Mark every unread message not sent by ``reader_id`` as read. Return the count.

        Deleted messages keep the status they had.
        """
        ...

    async def update_reactions(
        self, message_id: str, reactions: tuple[Reaction, ...],
    ) -> None: ...

    async def tombstone(self, message_id: str, content: str) -> None: ...
