"""WebSocket message envelope and payload models."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from chat_realtime.domain.value_objects.enums import MessageType


class WsInbound(BaseModel):
    """Client → Server."""

    type: str
    data: Any = None


class WsOutbound(BaseModel):
    """Server → Client."""

    type: str
    data: Any = None


class _Payload(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class ConversationRef(_Payload):
    conversation_id: str = Field(min_length=1)


class MessageRef(_Payload):
    message_id: str = Field(min_length=1)


class SendMessagePayload(_Payload):
    # senderId, status and reactions sent by clients are not trusted.
    id: str | None = None
    conversation_id: str = Field(min_length=1)
    content: str = ""
    type: MessageType = MessageType.TEXT
    timestamp: int | None = None
    reply_to_id: str | None = None
    file_name: str | None = None
    file_size: int | None = None
    duration: int | None = None


class ReactionPayload(_Payload):
    message_id: str = Field(min_length=1)
    conversation_id: str | None = None
    emoji: str = Field(min_length=1, max_length=32)


class DeleteMessagePayload(_Payload):
    message_id: str = Field(min_length=1)
    conversation_id: str | None = None


class MarkReadPayload(_Payload):
    conversation_id: str = Field(min_length=1)
    user_id: str | None = None


class HistoryRequestPayload(_Payload):
    conversation_id: str | None = None
    cursor: str | None = None
    limit: int | None = Field(default=None, ge=1, le=500)


class CallInvitePayload(_Payload):
    target_user_id: str = Field(min_length=1)
    offer: Any = None
    is_video: bool = False


class CallAnswerPayload(_Payload):
    target_user_id: str = Field(min_length=1)
    answer: Any = None


class CallIceCandidatePayload(_Payload):
    target_user_id: str = Field(min_length=1)
    candidate: Any = None


class CallTargetPayload(_Payload):
    target_user_id: str = Field(min_length=1)
