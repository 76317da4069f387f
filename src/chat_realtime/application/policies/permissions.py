from __future__ import annotations

from chat_realtime.application.exceptions import NotAuthorizedError, NotFoundError
from chat_realtime.application.repositories.member import MemberReader
from chat_realtime.domain.entities.conversation import Conversation
from chat_realtime.domain.entities.identity import Identity


async def assert_conversation_access(
    identity: Identity,
    conversation: Conversation | None,
    members: MemberReader,
) -> Conversation:
    """Raise if conversation doesn't exist or identity has no access."""
    if conversation is None:
        raise NotFoundError("Conversation not found")

    if conversation.is_global:
        return conversation

    if conversation.peers is not None:
        if identity.id not in conversation.peers:
            raise NotAuthorizedError("Not a participant of this conversation")
        return conversation

    is_member = await members.is_member(conversation.id, identity.id)
    if not is_member:
        raise NotAuthorizedError("Not a participant of this conversation")

    return conversation
