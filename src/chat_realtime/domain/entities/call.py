from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime

from chat_realtime.domain.value_objects.enums import CallState, MediaKind


@dataclass(frozen=True, slots=True)
class CallSession:
    caller_id: str
    callee_id: str
    media: MediaKind
    state: CallState = CallState.INVITED
    started_at: datetime | None = None

    @property
    def pair(self) -> tuple[str, str]:
        low, high = sorted((self.caller_id, self.callee_id))
        return low, high

    def involves(self, identity_id: str) -> bool:
        return identity_id in (self.caller_id, self.callee_id)

    def peer_of(self, identity_id: str) -> str:
        return self.callee_id if identity_id == self.caller_id else self.caller_id

    def activate(self) -> CallSession:
        return replace(self, state=CallState.ACTIVE)
