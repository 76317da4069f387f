from __future__ import annotations

from dataclasses import dataclass, replace

from chat_realtime.domain.value_objects.enums import MessageStatus, MessageType

TOMBSTONE_CONTENT = "🚫 This message was deleted"


@dataclass(frozen=True, slots=True)
class Reaction:
    user_id: str
    emoji: str


@dataclass(frozen=True, slots=True)
class ReplySnapshot:
    """Preview of the replied-to message, frozen at reply time."""

    id: str
    content: str
    type: MessageType
    sender_name: str


@dataclass(frozen=True, slots=True)
class Message:
    id: str
    conversation_id: str
    sender_id: str
    content: str
    timestamp: int
    type: MessageType = MessageType.TEXT
    status: MessageStatus = MessageStatus.SENT
    reactions: tuple[Reaction, ...] = ()
    reply_to_id: str | None = None
    reply_to: ReplySnapshot | None = None
    file_name: str | None = None
    file_size: int | None = None
    duration: int | None = None

    @property
    def is_deleted(self) -> bool:
        return self.type == MessageType.DELETED

    def with_status(self, status: MessageStatus) -> Message:
        return replace(self, status=self.status.advance(status))

    def toggle_reaction(self, user_id: str, emoji: str) -> Message:
        pair = Reaction(user_id=user_id, emoji=emoji)
        if pair in self.reactions:
            reactions = tuple(r for r in self.reactions if r != pair)
        else:
            reactions = (*self.reactions, pair)
        return replace(self, reactions=reactions)

    def tombstoned(self) -> Message:
        return replace(self, content=TOMBSTONE_CONTENT, type=MessageType.DELETED)

    def snapshot(self, sender_name: str) -> ReplySnapshot:
        return ReplySnapshot(
            id=self.id,
            content=self.content,
            type=self.type,
            sender_name=sender_name,
        )
