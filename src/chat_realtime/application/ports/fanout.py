from __future__ import annotations

from typing import Any, Iterable, Protocol

from chat_realtime.domain.entities.conversation import Conversation


class PersonalChannel(Protocol):
    async def send_to_identity(
        self, identity_id: str, event_type: str, data: dict[str, Any],
    ) -> None: ...


class Fanout(PersonalChannel, Protocol):
    """Delivery surface the services use to reach connected clients."""

    async def dispatch(
        self,
        conversation: Conversation,
        event_type: str,
        data: dict[str, Any],
        *,
        exclude_identity: str | None = None,
    ) -> None: ...

    async def dispatch_to(
        self,
        room_id: str,
        identity_ids: Iterable[str],
        event_type: str,
        data: dict[str, Any],
    ) -> None: ...

    async def broadcast(self, event_type: str, data: Any) -> None: ...
