from __future__ import annotations

from fastapi import APIRouter, Query

from chat_realtime.api.deps import CurrentIdentity, UoWDep
from chat_realtime.api.v1.schemas.common import PaginatedResponse
from chat_realtime.api.v1.schemas.message import MessageResponse
from chat_realtime.application.dto.message import message_payload
from chat_realtime.infrastructure.db.repositories._cursor import encode_cursor
from chat_realtime.services import message_service

router = APIRouter(prefix="/api/v1/chat/conversations", tags=["messages"])


@router.get(
    "/{conversation_id}/messages",
    response_model=PaginatedResponse[MessageResponse],
)
async def list_messages(
    conversation_id: str,
    identity: CurrentIdentity,
    uow: UoWDep,
    cursor: str | None = Query(None),
    limit: int = Query(50, ge=1, le=500),
) -> PaginatedResponse[MessageResponse]:
    messages = await message_service.list_messages(
        conversation_id, identity, cursor, limit, uow,
    )
    next_cursor = None
    if len(messages) == limit:
        last = messages[-1]
        next_cursor = encode_cursor(last.timestamp, last.id)
    return PaginatedResponse[MessageResponse](
        items=[MessageResponse.model_validate(message_payload(m)) for m in messages],
        next_cursor=next_cursor,
    )
