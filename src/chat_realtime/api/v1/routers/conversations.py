from __future__ import annotations

from fastapi import APIRouter

from chat_realtime.api.deps import CurrentIdentity, UoWDep
from chat_realtime.api.v1.schemas.conversation import (
    ConversationResponse,
    CreateConversationRequest,
)
from chat_realtime.application.dto.conversation import CreateConversationDTO
from chat_realtime.services import conversation_service

router = APIRouter(prefix="/api/v1/chat/conversations", tags=["conversations"])


@router.post("", response_model=ConversationResponse, status_code=201)
async def create_conversation(
    body: CreateConversationRequest,
    identity: CurrentIdentity,
    uow: UoWDep,
) -> ConversationResponse:
    conv = await conversation_service.create_conversation(
        CreateConversationDTO(
            kind=body.kind,
            member_ids=body.members,
            name=body.name,
            parent_id=body.parent_id,
        ),
        identity,
        uow,
    )
    return ConversationResponse.model_validate(conv, from_attributes=True)


@router.get("", response_model=list[ConversationResponse])
async def list_conversations(
    identity: CurrentIdentity,
    uow: UoWDep,
) -> list[ConversationResponse]:
    convs = await conversation_service.list_identity_conversations(identity, uow)
    return [ConversationResponse.model_validate(c, from_attributes=True) for c in convs]


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: str,
    identity: CurrentIdentity,
    uow: UoWDep,
) -> ConversationResponse:
    conv = await conversation_service.get_conversation(conversation_id, identity, uow)
    return ConversationResponse.model_validate(conv, from_attributes=True)
