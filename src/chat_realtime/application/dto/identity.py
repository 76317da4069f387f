from __future__ import annotations

from typing import Any

from chat_realtime.domain.entities.identity import Identity


def identity_payload(identity: Identity) -> dict[str, Any]:
    return {
        "id": identity.id,
        "username": identity.username,
        "avatar": identity.avatar,
    }
