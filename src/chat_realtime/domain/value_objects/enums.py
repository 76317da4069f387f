from __future__ import annotations

from enum import StrEnum


class ConversationKind(StrEnum):
    GLOBAL = "global"
    PRIVATE = "private"
    GROUP = "group"
    COMMUNITY = "community"
    CHANNEL = "channel"


class MessageType(StrEnum):
    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"
    FILE = "file"
    DELETED = "deleted"


class MessageStatus(StrEnum):
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"

    @property
    def rank(self) -> int:
        return _STATUS_RANK[self]

    def advance(self, target: MessageStatus) -> MessageStatus:
        """Return the later of the two statuses; statuses never go back."""
        return target if target.rank > self.rank else self

    def below(self) -> list[MessageStatus]:
        return [s for s in MessageStatus if s.rank < self.rank]


_STATUS_RANK: dict[str, int] = {
    MessageStatus.SENT: 0,
    MessageStatus.DELIVERED: 1,
    MessageStatus.READ: 2,
}


class CallState(StrEnum):
    IDLE = "idle"
    INVITED = "invited"
    ACTIVE = "active"


class MediaKind(StrEnum):
    AUDIO = "audio"
    VIDEO = "video"
