from __future__ import annotations

from chat_realtime.application.uow import UnitOfWork
from chat_realtime.domain.entities.identity import Identity

UNKNOWN_SENDER_NAME = "Unknown"


async def remember(identity: Identity, uow: UnitOfWork) -> None:
    """Record the latest profile seen in a verified token."""
    await uow.identities_w.upsert(identity)
    await uow.commit()


async def display_name(identity_id: str, uow: UnitOfWork) -> str:
    identity = await uow.identities.get_by_id(identity_id)
    return identity.username if identity else UNKNOWN_SENDER_NAME
