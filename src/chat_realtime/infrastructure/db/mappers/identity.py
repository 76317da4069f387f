from __future__ import annotations

from chat_realtime.domain.entities.identity import Identity
from chat_realtime.infrastructure.db.models.user import UserModel


def model_to_entity(model: UserModel) -> Identity:
    return Identity(id=model.id, username=model.username, avatar=model.avatar)
