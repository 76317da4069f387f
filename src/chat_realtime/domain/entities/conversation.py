from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from chat_realtime.domain.value_objects.enums import ConversationKind
from chat_realtime.domain.value_objects.ids import (
    GLOBAL_CONVERSATION_ID,
    private_conversation_id,
)


@dataclass(frozen=True, slots=True)
class Conversation:
    id: str
    kind: ConversationKind
    name: str | None = None
    created_by: str | None = None
    parent_id: str | None = None
    # Both members of a private conversation, in canonical order.
    peers: tuple[str, str] | None = None
    created_at: datetime | None = None

    @classmethod
    def global_room(cls) -> Conversation:
        return cls(id=GLOBAL_CONVERSATION_ID, kind=ConversationKind.GLOBAL, name="Global")

    @classmethod
    def private(
        cls,
        a: str,
        b: str,
        *,
        name: str | None = None,
        created_by: str | None = None,
        created_at: datetime | None = None,
    ) -> Conversation:
        low, high = sorted((a, b))
        return cls(
            id=private_conversation_id(a, b),
            kind=ConversationKind.PRIVATE,
            name=name,
            created_by=created_by,
            peers=(low, high),
            created_at=created_at,
        )

    @property
    def is_global(self) -> bool:
        return self.kind == ConversationKind.GLOBAL

    @property
    def is_private(self) -> bool:
        return self.kind == ConversationKind.PRIVATE

    @property
    def is_persisted(self) -> bool:
        return self.created_at is not None or self.is_global

    def personal_targets(self) -> tuple[str, ...]:
        """Identities that also receive events through their personal channel."""
        return self.peers if self.peers else ()
