from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from chat_realtime.domain.entities.message import Message, ReplySnapshot
from chat_realtime.domain.value_objects.enums import MessageStatus, MessageType


@dataclass(frozen=True, slots=True)
class MessageDraft:
    """A message as submitted by its sender, before the engine accepts it."""

    conversation_id: str
    content: str
    type: MessageType = MessageType.TEXT
    id: str | None = None
    timestamp: int | None = None
    status: MessageStatus | None = None
    reply_to_id: str | None = None
    file_name: str | None = None
    file_size: int | None = None
    duration: int | None = None


def reply_payload(snapshot: ReplySnapshot) -> dict[str, Any]:
    return {
        "id": snapshot.id,
        "content": snapshot.content,
        "type": str(snapshot.type),
        "senderName": snapshot.sender_name,
    }


def message_payload(msg: Message) -> dict[str, Any]:
    """Wire representation of a message (camelCase keys)."""
    data: dict[str, Any] = {
        "id": msg.id,
        "conversationId": msg.conversation_id,
        "senderId": msg.sender_id,
        "content": msg.content,
        "timestamp": msg.timestamp,
        "type": str(msg.type),
        "status": str(msg.status),
        "reactions": [{"userId": r.user_id, "emoji": r.emoji} for r in msg.reactions],
        "replyToId": msg.reply_to_id,
    }
    if msg.reply_to is not None:
        data["replyToMessage"] = reply_payload(msg.reply_to)
    if msg.file_name is not None:
        data["fileName"] = msg.file_name
    if msg.file_size is not None:
        data["fileSize"] = msg.file_size
    if msg.duration is not None:
        data["duration"] = msg.duration
    return data
