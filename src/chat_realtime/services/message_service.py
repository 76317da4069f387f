from __future__ import annotations

import logging
import uuid

from chat_realtime.application.dto.events import OutboundEvent
from chat_realtime.application.dto.message import MessageDraft, message_payload
from chat_realtime.application.exceptions import (
    NotAuthorizedError,
    NotFoundError,
    ValidationError,
)
from chat_realtime.application.policies.permissions import assert_conversation_access
from chat_realtime.application.ports.clock import Clock, SystemClock, epoch_ms
from chat_realtime.application.ports.fanout import Fanout
from chat_realtime.application.uow import UnitOfWork
from chat_realtime.domain.entities.conversation import Conversation
from chat_realtime.domain.entities.identity import Identity
from chat_realtime.domain.entities.message import TOMBSTONE_CONTENT, Message, ReplySnapshot
from chat_realtime.domain.value_objects.enums import MessageStatus, MessageType
from chat_realtime.services import conversation_service, identity_service
from chat_realtime.services._locks import KeyedLocks

logger = logging.getLogger(__name__)

_clock = SystemClock()

# Acceptance, persistence and fan-out of a conversation's messages happen
# one at a time so every member sees them in the same order.
_conversation_locks = KeyedLocks()
# Read-modify-write of a single message (reactions, deletion).
_message_locks = KeyedLocks()


async def send_message(
    draft: MessageDraft,
    sender: Identity,
    uow: UnitOfWork,
    fanout: Fanout,
    clock: Clock = _clock,
) -> tuple[Message, bool]:
    """Accept, persist and fan out a new message.

    Returns (message, created). A message whose id is already stored is
    returned as is with created=False and is not broadcast again.
    """
    if draft.type == MessageType.DELETED:
        raise ValidationError("A new message cannot be a deleted one")
    conversation = await conversation_service.resolve_conversation(draft.conversation_id, uow)
    conversation = await assert_conversation_access(sender, conversation, uow.members)

    async with _conversation_locks.hold(conversation.id):
        if not conversation.is_persisted:
            stored = await uow.conversations.get_by_id(conversation.id)
            conversation = stored or await conversation_service.persist_private(
                conversation, sender.id, uow, clock,
            )

        reply_to = None
        if draft.reply_to_id:
            reply_to = await _reply_snapshot(draft.reply_to_id, conversation.id, uow)

        msg = Message(
            id=draft.id or uuid.uuid4().hex,
            conversation_id=conversation.id,
            sender_id=sender.id,
            content=draft.content,
            timestamp=draft.timestamp or epoch_ms(clock),
            type=draft.type,
            status=draft.status or MessageStatus.SENT,
            reply_to_id=draft.reply_to_id,
            reply_to=reply_to,
            file_name=draft.file_name,
            file_size=draft.file_size,
            duration=draft.duration,
        )

        msg, created = await uow.messages_w.create_if_not_exists(msg)
        if not created:
            logger.debug("Message %s already stored, not re-broadcasting", msg.id)
            return msg, False

        await uow.commit()
        await fanout.dispatch(conversation, OutboundEvent.RECEIVE_MESSAGE, message_payload(msg))

    return msg, True


async def _reply_snapshot(
    reply_to_id: str,
    conversation_id: str,
    uow: UnitOfWork,
) -> ReplySnapshot | None:
    original = await uow.messages.get_by_id(reply_to_id)
    if original is None or original.conversation_id != conversation_id:
        return None
    sender_name = await identity_service.display_name(original.sender_id, uow)
    return original.snapshot(sender_name)


async def mark_delivered(
    message_id: str,
    recipient: Identity,
    uow: UnitOfWork,
    fanout: Fanout,
) -> Message:
    """Move a message from sent to delivered and tell its sender."""
    msg = await uow.messages.get_by_id(message_id)
    if msg is None:
        raise NotFoundError("Message not found")
    conversation = await conversation_service.resolve_conversation(msg.conversation_id, uow)
    await assert_conversation_access(recipient, conversation, uow.members)

    if msg.sender_id == recipient.id or msg.is_deleted:
        return msg

    changed = await uow.messages_w.advance_status(message_id, MessageStatus.DELIVERED)
    if not changed:
        return msg
    await uow.commit()

    await fanout.dispatch_to(
        msg.conversation_id,
        [msg.sender_id],
        OutboundEvent.MESSAGE_STATUS_UPDATE,
        {
            "messageId": msg.id,
            "status": str(MessageStatus.DELIVERED),
            "conversationId": msg.conversation_id,
        },
    )
    return msg.with_status(MessageStatus.DELIVERED)


async def mark_read(
    conversation_id: str,
    reader: Identity,
    uow: UnitOfWork,
    fanout: Fanout,
) -> int:
    """Mark everything the reader received in a conversation as read.

    One receipt is broadcast for the whole batch. Returns the number of
    messages that changed.
    """
    conversation = await conversation_service.resolve_conversation(conversation_id, uow)
    conversation = await assert_conversation_access(reader, conversation, uow.members)

    count = await uow.messages_w.mark_read(conversation.id, reader.id)
    if not count:
        return 0
    await uow.commit()

    await fanout.dispatch(
        conversation,
        OutboundEvent.MESSAGES_READ_UPDATE,
        {"conversationId": conversation.id, "readBy": reader.id},
    )
    return count


async def toggle_reaction(
    message_id: str,
    emoji: str,
    user: Identity,
    uow: UnitOfWork,
    fanout: Fanout,
) -> Message:
    async with _message_locks.hold(message_id):
        msg = await uow.messages_w.get_for_update(message_id)
        if msg is None:
            raise NotFoundError("Message not found")
        conversation = await _accessible_conversation(msg, user, uow)

        if msg.is_deleted:
            logger.debug("Ignoring reaction on deleted message %s", message_id)
            return msg

        updated = msg.toggle_reaction(user.id, emoji)
        await uow.messages_w.update_reactions(message_id, updated.reactions)
        await uow.commit()

        await fanout.dispatch(conversation, OutboundEvent.MESSAGE_UPDATE, message_payload(updated))
    return updated


async def soft_delete(
    message_id: str,
    requester: Identity,
    uow: UnitOfWork,
    fanout: Fanout,
) -> Message:
    """Replace a message with the tombstone. Only its sender may do this."""
    async with _message_locks.hold(message_id):
        msg = await uow.messages_w.get_for_update(message_id)
        if msg is None:
            raise NotFoundError("Message not found")
        if msg.sender_id != requester.id:
            raise NotAuthorizedError("Only the sender can delete a message")
        if msg.is_deleted:
            return msg

        deleted = msg.tombstoned()
        await uow.messages_w.tombstone(message_id, TOMBSTONE_CONTENT)
        await uow.commit()

        data = {
            "id": deleted.id,
            "conversationId": deleted.conversation_id,
            "type": str(MessageType.DELETED),
        }
        conversation = await conversation_service.resolve_conversation(msg.conversation_id, uow)
        if conversation is not None:
            await fanout.dispatch(conversation, OutboundEvent.MESSAGE_DELETED, data)
        else:
            await fanout.dispatch_to(msg.conversation_id, (), OutboundEvent.MESSAGE_DELETED, data)
    return deleted


async def _accessible_conversation(
    msg: Message,
    identity: Identity,
    uow: UnitOfWork,
) -> Conversation:
    conversation = await conversation_service.resolve_conversation(msg.conversation_id, uow)
    return await assert_conversation_access(identity, conversation, uow.members)


async def list_messages(
    conversation_id: str,
    identity: Identity,
    cursor: str | None,
    limit: int,
    uow: UnitOfWork,
) -> list[Message]:
    conversation = await conversation_service.resolve_conversation(conversation_id, uow)
    await assert_conversation_access(identity, conversation, uow.members)
    return await uow.messages.list_messages(conversation_id, cursor=cursor, limit=limit)


async def list_visible_messages(
    identity: Identity,
    limit: int,
    uow: UnitOfWork,
) -> list[Message]:
    return await uow.messages.list_visible(identity.id, limit=limit)
