from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from chat_realtime.domain.value_objects.enums import MessageStatus, MessageType


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReactionResponse(_CamelModel):
    user_id: str
    emoji: str


class ReplyPreviewResponse(_CamelModel):
    id: str
    content: str
    type: MessageType
    sender_name: str


class MessageResponse(_CamelModel):
    """Same shape as the ``receive_message`` socket payload."""

    id: str
    conversation_id: str
    sender_id: str
    content: str
    timestamp: int
    type: MessageType
    status: MessageStatus
    reactions: list[ReactionResponse] = []
    reply_to_id: str | None = None
    reply_to_message: ReplyPreviewResponse | None = None
    file_name: str | None = None
    file_size: int | None = None
    duration: int | None = None
