from __future__ import annotations

from typing import Any

from chat_realtime.domain.entities.message import Message, Reaction, ReplySnapshot
from chat_realtime.domain.value_objects.enums import MessageStatus, MessageType
from chat_realtime.infrastructure.db.models.message import MessageModel


def reactions_to_json(reactions: tuple[Reaction, ...]) -> list[dict[str, Any]]:
    return [{"user_id": r.user_id, "emoji": r.emoji} for r in reactions]


def _reactions_from_json(raw: list[dict[str, Any]] | None) -> tuple[Reaction, ...]:
    return tuple(Reaction(user_id=r["user_id"], emoji=r["emoji"]) for r in raw or ())


def _snapshot_to_json(snapshot: ReplySnapshot | None) -> dict[str, Any] | None:
    if snapshot is None:
        return None
    return {
        "id": snapshot.id,
        "content": snapshot.content,
        "type": str(snapshot.type),
        "sender_name": snapshot.sender_name,
    }


def _snapshot_from_json(raw: dict[str, Any] | None) -> ReplySnapshot | None:
    if not raw:
        return None
    return ReplySnapshot(
        id=raw["id"],
        content=raw["content"],
        type=MessageType(raw["type"]),
        sender_name=raw["sender_name"],
    )


def model_to_entity(model: MessageModel) -> Message:
    return Message(
        id=model.id,
        conversation_id=model.conversation_id,
        sender_id=model.sender_id,
        content=model.content,
        timestamp=model.timestamp,
        type=MessageType(model.type),
        status=MessageStatus(model.status),
        reactions=_reactions_from_json(model.reactions),
        reply_to_id=model.reply_to_id,
        reply_to=_snapshot_from_json(model.reply_snapshot),
        file_name=model.file_name,
        file_size=model.file_size,
        duration=model.duration,
    )


def entity_to_values(entity: Message) -> dict[str, Any]:
    """Column values for an INSERT of ``entity``."""
    return {
        "id": entity.id,
        "conversation_id": entity.conversation_id,
        "sender_id": entity.sender_id,
        "content": entity.content,
        "timestamp": entity.timestamp,
        "type": str(entity.type),
        "status": str(entity.status),
        "reactions": reactions_to_json(entity.reactions),
        "reply_to_id": entity.reply_to_id,
        "reply_snapshot": _snapshot_to_json(entity.reply_to),
        "file_name": entity.file_name,
        "file_size": entity.file_size,
        "duration": entity.duration,
    }
