from __future__ import annotations

from chat_realtime.domain.entities.conversation import Conversation
from chat_realtime.domain.value_objects.enums import ConversationKind
from chat_realtime.infrastructure.db.models.conversation import ConversationModel


def model_to_entity(model: ConversationModel) -> Conversation:
    peers = None
    if model.peer_low is not None and model.peer_high is not None:
        peers = (model.peer_low, model.peer_high)
    return Conversation(
        id=model.id,
        kind=ConversationKind(model.kind),
        name=model.name,
        created_by=model.created_by,
        parent_id=model.parent_id,
        peers=peers,
        created_at=model.created_at,
    )


def entity_to_model(entity: Conversation) -> ConversationModel:
    low, high = entity.peers if entity.peers else (None, None)
    return ConversationModel(
        id=entity.id,
        kind=str(entity.kind),
        name=entity.name,
        created_by=entity.created_by,
        parent_id=entity.parent_id,
        peer_low=low,
        peer_high=high,
        created_at=entity.created_at,
    )
