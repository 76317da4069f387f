from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from chat_realtime.domain.value_objects.enums import ConversationKind


class CreateConversationRequest(BaseModel):
    kind: ConversationKind
    name: str | None = Field(None, max_length=255)
    members: list[str] = Field(default_factory=list)
    parent_id: str | None = None


class ConversationResponse(BaseModel):
    id: str
    kind: ConversationKind
    name: str | None
    created_by: str | None
    parent_id: str | None
    peers: list[str] | None
    created_at: datetime | None

    model_config = {"from_attributes": True}
