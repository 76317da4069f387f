from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

import pydantic
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from chat_realtime.api.deps import UoWFactoryDep, VerifierDep
from chat_realtime.api.middleware.correlation_id import correlation_id_ctx
from chat_realtime.application.dto.events import InboundEvent, OutboundEvent
from chat_realtime.application.dto.message import MessageDraft, message_payload
from chat_realtime.application.exceptions import (
    NotAuthorizedError,
    NotFoundError,
    UnauthenticatedError,
    ValidationError,
)
from chat_realtime.application.uow import UoWFactory
from chat_realtime.config import settings
from chat_realtime.domain.entities.identity import Identity
from chat_realtime.infrastructure.ws.connection import Connection
from chat_realtime.infrastructure.ws.hub import RealtimeHub
from chat_realtime.infrastructure.ws.protocol import (
    CallAnswerPayload,
    CallIceCandidatePayload,
    CallInvitePayload,
    CallTargetPayload,
    ConversationRef,
    DeleteMessagePayload,
    HistoryRequestPayload,
    MarkReadPayload,
    MessageRef,
    ReactionPayload,
    SendMessagePayload,
    WsInbound,
)
from chat_realtime.services import (
    conversation_service,
    identity_service,
    message_service,
)

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])

CLOSE_UNAUTHENTICATED = 4001

P = TypeVar("P", bound=pydantic.BaseModel)


@dataclass(slots=True)
class _Session:
    connection: Connection
    identity: Identity
    hub: RealtimeHub
    uow_factory: UoWFactory


@router.websocket("/ws/chat")
async def ws_chat(
    websocket: WebSocket,
    verifier: VerifierDep,
    uow_factory: UoWFactoryDep,
    token: str | None = Query(None),
) -> None:
    try:
        identity = await verifier.verify(token or "")
    except UnauthenticatedError as exc:
        logger.debug("WS auth failed: %s", exc.detail)
        await websocket.close(code=CLOSE_UNAUTHENTICATED, reason="Authentication failed")
        return

    hub: RealtimeHub = websocket.app.state.hub
    connection = Connection(websocket)
    correlation_id_ctx.set(connection.id)
    await connection.accept()
    logger.debug("WS connected: %s as %s", connection.id, identity.id)

    session = _Session(connection, identity, hub, uow_factory)
    await _remember(session)
    await hub.connect(connection, identity)

    heartbeat_task = asyncio.create_task(
        _heartbeat(connection), name=f"ws-heartbeat-{connection.id}",
    )
    try:
        await _read_loop(websocket, session)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %s", connection.id)
    finally:
        await _stop_heartbeat(heartbeat_task)
        await hub.disconnect(connection)
        logger.debug("WS disconnected: %s", connection.id)


async def _remember(session: _Session) -> None:
    try:
        async with session.uow_factory() as uow:
            await identity_service.remember(session.identity, uow)
    except Exception:
        logger.exception("Failed to record identity %s", session.identity.id)


async def _heartbeat(connection: Connection) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    while True:
        await asyncio.sleep(interval)
        if not await connection.send(OutboundEvent.PONG, {}):
            return


async def _stop_heartbeat(task: asyncio.Task[None]) -> None:
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task


async def _read_loop(ws: WebSocket, session: _Session) -> None:
    while True:
        raw = await ws.receive_text()
        try:
            frame = WsInbound.model_validate_json(raw)
        except pydantic.ValidationError:
            await _send_error(session, "invalid_data")
            continue

        handler = _HANDLERS.get(frame.type)
        if handler is None:
            await _send_error(session, "unknown_type", type=frame.type)
            continue

        try:
            await handler(session, frame.data)
        except (pydantic.ValidationError, ValidationError) as exc:
            await _send_error(session, "invalid_data", type=frame.type, detail=_describe(exc))
        except (NotFoundError, NotAuthorizedError) as exc:
            logger.debug(
                "Dropped %s from %s: %s", frame.type, session.identity.id, exc.detail,
            )
        except Exception:
            logger.exception("Failed to handle %s from %s", frame.type, session.identity.id)


async def _send_error(session: _Session, code: str, **extra: Any) -> None:
    await session.connection.send(OutboundEvent.ERROR, {"code": code, **extra})


def _describe(exc: Exception) -> str:
    if isinstance(exc, pydantic.ValidationError):
        return "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'data'}: {err['msg']}"
            for err in exc.errors()
        )
    return str(exc)


def _parse(model: type[P], data: Any, bare_field: str | None = None) -> P:
    """Validate a payload. Some events also accept a bare id string."""
    if bare_field is not None and isinstance(data, str):
        data = {bare_field: data}
    return model.model_validate(data if data is not None else {})


# --- Handlers ---------------------------------------------------------------


async def _on_ping(session: _Session, data: Any) -> None:
    await session.connection.send(OutboundEvent.PONG, {})


async def _on_join(session: _Session, data: Any) -> None:
    ref = _parse(ConversationRef, data, "conversation_id")
    async with session.uow_factory() as uow:
        conversation = await conversation_service.get_conversation(
            ref.conversation_id, session.identity, uow,
        )
    await session.hub.router.join(session.connection.id, conversation.id)


async def _on_leave(session: _Session, data: Any) -> None:
    ref = _parse(ConversationRef, data, "conversation_id")
    await session.hub.router.leave(session.connection.id, ref.conversation_id)


async def _on_history(session: _Session, data: Any) -> None:
    req = _parse(HistoryRequestPayload, data, "conversation_id")
    limit = req.limit or settings.HISTORY_PAGE_SIZE
    async with session.uow_factory() as uow:
        if req.conversation_id:
            messages = await message_service.list_messages(
                req.conversation_id, session.identity, req.cursor, limit, uow,
            )
        else:
            messages = await message_service.list_visible_messages(
                session.identity, limit, uow,
            )
    await session.connection.send(
        OutboundEvent.HISTORY, [message_payload(m) for m in messages],
    )


async def _on_send_message(session: _Session, data: Any) -> None:
    p = _parse(SendMessagePayload, data)
    draft = MessageDraft(
        conversation_id=p.conversation_id,
        content=p.content,
        type=p.type,
        id=p.id,
        timestamp=p.timestamp,
        reply_to_id=p.reply_to_id,
        file_name=p.file_name,
        file_size=p.file_size,
        duration=p.duration,
    )
    async with session.uow_factory() as uow:
        await message_service.send_message(draft, session.identity, uow, session.hub.router)


async def _on_typing_start(session: _Session, data: Any) -> None:
    ref = _parse(ConversationRef, data, "conversation_id")
    async with session.uow_factory() as uow:
        conversation = await conversation_service.get_conversation(
            ref.conversation_id, session.identity, uow,
        )
    await session.hub.typing.start(conversation, session.identity, session.connection.id)


async def _on_typing_end(session: _Session, data: Any) -> None:
    ref = _parse(ConversationRef, data, "conversation_id")
    async with session.uow_factory() as uow:
        conversation = await conversation_service.get_conversation(
            ref.conversation_id, session.identity, uow,
        )
    await session.hub.typing.stop(conversation, session.identity)


async def _on_reaction(session: _Session, data: Any) -> None:
    p = _parse(ReactionPayload, data)
    async with session.uow_factory() as uow:
        await message_service.toggle_reaction(
            p.message_id, p.emoji, session.identity, uow, session.hub.router,
        )


async def _on_delete(session: _Session, data: Any) -> None:
    p = _parse(DeleteMessagePayload, data, "message_id")
    async with session.uow_factory() as uow:
        await message_service.soft_delete(
            p.message_id, session.identity, uow, session.hub.router,
        )


async def _on_mark_read(session: _Session, data: Any) -> None:
    # The reader is always the connection's identity, whatever userId says.
    p = _parse(MarkReadPayload, data, "conversation_id")
    async with session.uow_factory() as uow:
        await message_service.mark_read(
            p.conversation_id, session.identity, uow, session.hub.router,
        )


async def _on_mark_delivered(session: _Session, data: Any) -> None:
    ref = _parse(MessageRef, data, "message_id")
    async with session.uow_factory() as uow:
        await message_service.mark_delivered(
            ref.message_id, session.identity, uow, session.hub.router,
        )


async def _on_call_invite(session: _Session, data: Any) -> None:
    p = _parse(CallInvitePayload, data)
    await session.hub.calls.invite(session.identity, p.target_user_id, p.offer, p.is_video)


async def _on_call_answer(session: _Session, data: Any) -> None:
    p = _parse(CallAnswerPayload, data)
    await session.hub.calls.answer(session.identity, p.target_user_id, p.answer)


async def _on_call_ice_candidate(session: _Session, data: Any) -> None:
    p = _parse(CallIceCandidatePayload, data)
    await session.hub.calls.ice_candidate(session.identity, p.target_user_id, p.candidate)


async def _on_call_reject(session: _Session, data: Any) -> None:
    p = _parse(CallTargetPayload, data)
    await session.hub.calls.reject(session.identity, p.target_user_id)


async def _on_call_end(session: _Session, data: Any) -> None:
    p = _parse(CallTargetPayload, data)
    await session.hub.calls.end(session.identity, p.target_user_id)


_Handler = Callable[[_Session, Any], Awaitable[None]]

_HANDLERS: dict[str, _Handler] = {
    InboundEvent.PING: _on_ping,
    InboundEvent.JOIN_CONVERSATION: _on_join,
    InboundEvent.LEAVE_CONVERSATION: _on_leave,
    InboundEvent.HISTORY_REQUEST: _on_history,
    InboundEvent.SEND_MESSAGE: _on_send_message,
    InboundEvent.TYPING_START: _on_typing_start,
    InboundEvent.TYPING_END: _on_typing_end,
    InboundEvent.ADD_REACTION: _on_reaction,
    InboundEvent.MESSAGE_REACTION: _on_reaction,
    InboundEvent.DELETE_MESSAGE: _on_delete,
    InboundEvent.MARK_READ: _on_mark_read,
    InboundEvent.MARK_DELIVERED: _on_mark_delivered,
    InboundEvent.CALL_INVITE: _on_call_invite,
    InboundEvent.CALL_ANSWER: _on_call_answer,
    InboundEvent.CALL_ICE_CANDIDATE: _on_call_ice_candidate,
    InboundEvent.CALL_REJECT: _on_call_reject,
    InboundEvent.CALL_END: _on_call_end,
}
