"""Shared test fixtures."""
from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Iterable

import pytest

from chat_realtime.domain.entities.conversation import Conversation
from chat_realtime.domain.entities.identity import Identity
from chat_realtime.domain.entities.message import Message, Reaction
from chat_realtime.domain.value_objects.enums import (
    ConversationKind,
    MessageStatus,
    MessageType,
)
from chat_realtime.domain.value_objects.ids import GLOBAL_CONVERSATION_ID
from chat_realtime.infrastructure.db.repositories._cursor import decode_cursor

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def alice() -> Identity:
    return Identity(id="u1", username="Alice", avatar="https://example.test/a.png")


@pytest.fixture
def bob() -> Identity:
    return Identity(id="u2", username="Bob")


@pytest.fixture
def carol() -> Identity:
    return Identity(id="u3", username="carol")


class FixedClock:
    def __init__(self, now: datetime = NOW) -> None:
        self._now = now

    def now(self) -> datetime:
        return self._now


def make_group(
    *,
    conversation_id: str | None = None,
    kind: ConversationKind = ConversationKind.GROUP,
    parent_id: str | None = None,
) -> Conversation:
    return Conversation(
        id=conversation_id or uuid.uuid4().hex,
        kind=kind,
        name="Team",
        created_by="u1",
        parent_id=parent_id,
        created_at=NOW,
    )


def make_message(
    *,
    message_id: str | None = None,
    conversation_id: str = GLOBAL_CONVERSATION_ID,
    sender_id: str = "u1",
    content: str = "hello",
    timestamp: int = 1_714_564_800_000,
    status: MessageStatus = MessageStatus.SENT,
    type: MessageType = MessageType.TEXT,
) -> Message:
    return Message(
        id=message_id or uuid.uuid4().hex,
        conversation_id=conversation_id,
        sender_id=sender_id,
        content=content,
        timestamp=timestamp,
        type=type,
        status=status,
    )


# --- Repository fakes -------------------------------------------------------


@dataclass
class FakeMemberReader:
    _members: set[tuple[str, str]] = field(default_factory=set)

    async def is_member(self, conversation_id: str, identity_id: str) -> bool:
        return (conversation_id, identity_id) in self._members

    async def list_member_ids(self, conversation_id: str) -> list[str]:
        return sorted(i for c, i in self._members if c == conversation_id)


@dataclass
class FakeMemberWriter:
    _reader: FakeMemberReader

    async def add(self, conversation_id: str, identity_id: str, joined_at: datetime) -> None:
        self._reader._members.add((conversation_id, identity_id))


@dataclass
class FakeConversationReader:
    _members: FakeMemberReader
    _store: dict[str, Conversation] = field(default_factory=dict)

    async def get_by_id(self, conversation_id: str) -> Conversation | None:
        return self._store.get(conversation_id)

    async def list_for_identity(self, identity_id: str) -> list[Conversation]:
        return [
            c for c in self._store.values()
            if (c.id, identity_id) in self._members._members
        ]


@dataclass
class FakeConversationWriter:
    _reader: FakeConversationReader

    async def create(self, conversation: Conversation) -> Conversation:
        if conversation.id in self._reader._store:
            raise RuntimeError(f"duplicate conversation {conversation.id}")
        self._reader._store[conversation.id] = conversation
        return conversation


@dataclass
class FakeIdentityReader:
    _store: dict[str, Identity] = field(default_factory=dict)

    async def get_by_id(self, identity_id: str) -> Identity | None:
        return self._store.get(identity_id)


@dataclass
class FakeIdentityWriter:
    _reader: FakeIdentityReader

    async def upsert(self, identity: Identity) -> None:
        self._reader._store[identity.id] = identity


@dataclass
class FakeMessageReader:
    _members: FakeMemberReader
    _messages: dict[str, Message] = field(default_factory=dict)

    async def get_by_id(self, message_id: str) -> Message | None:
        return self._messages.get(message_id)

    async def list_messages(
        self, conversation_id: str, *, cursor: str | None = None, limit: int = 50,
    ) -> list[Message]:
        rows = sorted(
            (m for m in self._messages.values() if m.conversation_id == conversation_id),
            key=lambda m: (m.timestamp, m.id),
        )
        if cursor:
            after = decode_cursor(cursor)
            rows = [m for m in rows if (m.timestamp, m.id) > after]
        return rows[:limit]

    async def list_visible(self, identity_id: str, *, limit: int = 200) -> list[Message]:
        rows = sorted(
            (
                m for m in self._messages.values()
                if m.conversation_id == GLOBAL_CONVERSATION_ID
                or (m.conversation_id, identity_id) in self._members._members
            ),
            key=lambda m: (m.timestamp, m.id),
        )
        return rows[-limit:]


@dataclass
class FakeMessageWriter:
    _reader: FakeMessageReader
    fail_on_create: bool = False

    async def create_if_not_exists(self, message: Message) -> tuple[Message, bool]:
        if self.fail_on_create:
            raise RuntimeError("database unavailable")
        existing = self._reader._messages.get(message.id)
        if existing is not None:
            return existing, False
        self._reader._messages[message.id] = message
        return message, True

    async def get_for_update(self, message_id: str) -> Message | None:
        return self._reader._messages.get(message_id)

    async def advance_status(self, message_id: str, status: MessageStatus) -> bool:
        msg = self._reader._messages.get(message_id)
        if msg is None or msg.is_deleted or msg.status.rank >= status.rank:
            return False
        self._reader._messages[message_id] = replace(msg, status=status)
        return True

    async def mark_read(self, conversation_id: str, reader_id: str) -> int:
        count = 0
        for mid, msg in list(self._reader._messages.items()):
            if (
                msg.conversation_id == conversation_id
                and msg.sender_id != reader_id
                and msg.status != MessageStatus.READ
                and not msg.is_deleted
            ):
                self._reader._messages[mid] = replace(msg, status=MessageStatus.READ)
                count += 1
        return count

    async def update_reactions(self, message_id: str, reactions: tuple[Reaction, ...]) -> None:
        msg = self._reader._messages[message_id]
        self._reader._messages[message_id] = replace(msg, reactions=reactions)

    async def tombstone(self, message_id: str, content: str) -> None:
        msg = self._reader._messages[message_id]
        self._reader._messages[message_id] = replace(
            msg, content=content, type=MessageType.DELETED,
        )


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""
    members: FakeMemberReader = field(default_factory=FakeMemberReader)
    members_w: FakeMemberWriter | None = None
    conversations: FakeConversationReader | None = None
    conversations_w: FakeConversationWriter | None = None
    messages: FakeMessageReader | None = None
    messages_w: FakeMessageWriter | None = None
    identities: FakeIdentityReader = field(default_factory=FakeIdentityReader)
    identities_w: FakeIdentityWriter | None = None
    commits: int = 0
    rollbacks: int = 0

    def __post_init__(self) -> None:
        self.members_w = FakeMemberWriter(self.members)
        self.conversations = FakeConversationReader(self.members)
        self.conversations_w = FakeConversationWriter(self.conversations)
        self.messages = FakeMessageReader(self.members)
        self.messages_w = FakeMessageWriter(self.messages)
        self.identities_w = FakeIdentityWriter(self.identities)

    @property
    def _committed(self) -> bool:
        return self.commits > 0

    def add_conversation(self, conversation: Conversation, *member_ids: str) -> Conversation:
        self.conversations._store[conversation.id] = conversation
        for identity_id in member_ids:
            self.members._members.add((conversation.id, identity_id))
        return conversation

    def add_message(self, message: Message) -> Message:
        self.messages._messages[message.id] = message
        return message

    def stored(self, message_id: str) -> Message:
        return self.messages._messages[message_id]

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1


def uow_factory_for(uow: FakeUoW):
    """A UoW factory that hands out the same in-memory UoW every time."""

    @asynccontextmanager
    async def _factory() -> AsyncIterator[FakeUoW]:
        try:
            yield uow
        except Exception:
            await uow.rollback()
            raise

    return _factory


# --- Delivery fakes ---------------------------------------------------------


@dataclass
class Delivery:
    kind: str
    target: Any
    event_type: str
    data: Any
    exclude_identity: str | None = None


@dataclass
class RecordingFanout:
    """Fanout that records what the services asked it to deliver."""
    deliveries: list[Delivery] = field(default_factory=list)

    async def dispatch(
        self,
        conversation: Conversation,
        event_type: str,
        data: dict[str, Any],
        *,
        exclude_identity: str | None = None,
    ) -> None:
        self.deliveries.append(
            Delivery("conversation", conversation.id, event_type, data, exclude_identity)
        )

    async def dispatch_to(
        self,
        room_id: str,
        identity_ids: Iterable[str],
        event_type: str,
        data: dict[str, Any],
    ) -> None:
        self.deliveries.append(
            Delivery("room", (room_id, tuple(identity_ids)), event_type, data)
        )

    async def send_to_identity(
        self, identity_id: str, event_type: str, data: dict[str, Any],
    ) -> None:
        self.deliveries.append(Delivery("identity", identity_id, event_type, data))

    async def broadcast(self, event_type: str, data: Any) -> None:
        self.deliveries.append(Delivery("everyone", None, event_type, data))

    def of_type(self, event_type: str) -> list[Delivery]:
        return [d for d in self.deliveries if d.event_type == event_type]


@dataclass
class FakeConnection:
    id: str
    alive: bool = True
    sent: list[tuple[str, Any]] = field(default_factory=list)

    async def send(self, event_type: str, data: Any) -> bool:
        if not self.alive:
            return False
        self.sent.append((str(event_type), data))
        return True

    def events(self, event_type: str) -> list[Any]:
        return [data for t, data in self.sent if t == event_type]


@pytest.fixture
def uow() -> FakeUoW:
    return FakeUoW()


@pytest.fixture
def fanout() -> RecordingFanout:
    return RecordingFanout()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()
