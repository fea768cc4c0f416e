from __future__ import annotations

from staunton_chat.domain.entities.conversation import Conversation
from staunton_chat.infrastructure.db.models.conversation import ConversationModel


def model_to_entity(model: ConversationModel) -> Conversation:
    return Conversation(
        id=model.id,
        participant_1=model.participant_1,
        participant_2=model.participant_2,
        last_message_at=model.last_message_at,
        created_at=model.created_at,
    )
