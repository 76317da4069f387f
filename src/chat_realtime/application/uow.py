from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Callable, Protocol

from chat_realtime.application.repositories.conversation import (
    ConversationReader,
    ConversationWriter,
)
from chat_realtime.application.repositories.identity import IdentityReader, IdentityWriter
from chat_realtime.application.repositories.member import MemberReader, MemberWriter
from chat_realtime.application.repositories.message import MessageReader, MessageWriter


class UnitOfWork(Protocol):
    conversations: ConversationReader
    conversations_w: ConversationWriter
    members: MemberReader
    members_w: MemberWriter
    messages: MessageReader
    messages_w: MessageWriter
    identities: IdentityReader
    identities_w: IdentityWriter

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
    async def flush(self) -> None: ...


# Opens a fresh UnitOfWork per inbound socket event.
UoWFactory = Callable[[], AbstractAsyncContextManager[UnitOfWork]]
