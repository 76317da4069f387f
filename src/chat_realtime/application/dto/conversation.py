from __future__ import annotations

from dataclasses import dataclass, field

from chat_realtime.domain.value_objects.enums import ConversationKind


@dataclass(frozen=True, slots=True)
class CreateConversationDTO:
    kind: ConversationKind
    member_ids: list[str] = field(default_factory=list)
    name: str | None = None
    parent_id: str | None = None
