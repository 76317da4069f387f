from __future__ import annotations

import uuid

from chat_realtime.application.dto.conversation import CreateConversationDTO
from chat_realtime.application.exceptions import NotFoundError, ValidationError
from chat_realtime.application.policies.permissions import assert_conversation_access
from chat_realtime.application.ports.clock import Clock, SystemClock
from chat_realtime.application.uow import UnitOfWork
from chat_realtime.domain.entities.conversation import Conversation
from chat_realtime.domain.entities.identity import Identity
from chat_realtime.domain.value_objects.enums import ConversationKind
from chat_realtime.domain.value_objects.ids import GLOBAL_CONVERSATION_ID, split_private_id

ANNOUNCEMENTS_CHANNEL_NAME = "Announcements"

_clock = SystemClock()


async def resolve_conversation(
    conversation_id: str,
    uow: UnitOfWork,
) -> Conversation | None:
    """Turn a conversation id into a typed Conversation.

    A canonical private-pair id with no stored conversation yet resolves to
    an unsaved private Conversation, so the first message of a new private
    chat can be routed to both peers.
    """
    if conversation_id == GLOBAL_CONVERSATION_ID:
        return Conversation.global_room()

    conversation = await uow.conversations.get_by_id(conversation_id)
    if conversation is not None:
        return conversation

    peers = split_private_id(conversation_id)
    if peers is not None:
        return Conversation.private(*peers)
    return None


async def persist_private(
    conversation: Conversation,
    created_by: str,
    uow: UnitOfWork,
    clock: Clock = _clock,
) -> Conversation:
    """Store an unsaved private conversation and its two members. Caller commits."""
    assert conversation.peers is not None
    now = clock.now()
    low, high = conversation.peers
    conversation = await uow.conversations_w.create(
        Conversation.private(
            low, high, name="Private Chat", created_by=created_by, created_at=now,
        )
    )
    for identity_id in conversation.peers or ():
        await uow.members_w.add(conversation.id, identity_id, now)
    return conversation


async def create_conversation(
    dto: CreateConversationDTO,
    creator: Identity,
    uow: UnitOfWork,
    clock: Clock = _clock,
) -> Conversation:
    """Create a conversation with ``creator`` among its members.

    Private conversations are keyed by their member pair, so creating one
    that already exists returns the stored conversation. Creating a
    community also creates its Announcements channel.
    """
    member_ids = list(dict.fromkeys(m for m in dto.member_ids if m))
    if not member_ids:
        raise ValidationError("Members required")
    if creator.id not in member_ids:
        member_ids.append(creator.id)

    now = clock.now()

    if dto.kind == ConversationKind.GLOBAL:
        raise ValidationError("The global conversation cannot be created")

    if dto.kind == ConversationKind.PRIVATE:
        others = [m for m in member_ids if m != creator.id]
        if len(others) != 1:
            raise ValidationError("A private conversation has exactly two members")
        try:
            candidate = Conversation.private(
                creator.id,
                others[0],
                name=dto.name or "Private Chat",
                created_by=creator.id,
                created_at=now,
            )
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        existing = await uow.conversations.get_by_id(candidate.id)
        if existing is not None:
            return existing
        conversation = await uow.conversations_w.create(candidate)
    else:
        if dto.parent_id is not None:
            parent = await uow.conversations.get_by_id(dto.parent_id)
            if parent is None:
                raise NotFoundError("Parent conversation not found")
            if parent.kind != ConversationKind.COMMUNITY:
                raise ValidationError("Only communities can hold channels")
        elif dto.kind == ConversationKind.CHANNEL:
            raise ValidationError("A channel needs a parent community")

        conversation = await uow.conversations_w.create(
            Conversation(
                id=uuid.uuid4().hex,
                kind=dto.kind,
                name=dto.name or "New Group",
                created_by=creator.id,
                parent_id=dto.parent_id,
                created_at=now,
            )
        )

    for identity_id in member_ids:
        await uow.members_w.add(conversation.id, identity_id, now)

    if conversation.kind == ConversationKind.COMMUNITY:
        announcements = await uow.conversations_w.create(
            Conversation(
                id=uuid.uuid4().hex,
                kind=ConversationKind.CHANNEL,
                name=ANNOUNCEMENTS_CHANNEL_NAME,
                created_by=creator.id,
                parent_id=conversation.id,
                created_at=now,
            )
        )
        for identity_id in member_ids:
            await uow.members_w.add(announcements.id, identity_id, now)

    await uow.commit()
    return conversation


async def list_identity_conversations(
    identity: Identity,
    uow: UnitOfWork,
) -> list[Conversation]:
    return await uow.conversations.list_for_identity(identity.id)


async def get_conversation(
    conversation_id: str,
    identity: Identity,
    uow: UnitOfWork,
) -> Conversation:
    conversation = await resolve_conversation(conversation_id, uow)
    return await assert_conversation_access(identity, conversation, uow.members)
