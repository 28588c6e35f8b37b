from __future__ import annotations

from estate_chat.domain.entities.conversation import Conversation
from estate_chat.infrastructure.db.models.conversation import ConversationModel


def model_to_entity(model: ConversationModel) -> Conversation:
    return Conversation(
        id=model.id,
        buyer_id=model.buyer_id,
        seller_id=model.seller_id,
        property_id=model.property_id,
        created_at=model.created_at,
    )
