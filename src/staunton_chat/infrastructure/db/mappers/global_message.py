from __future__ import annotations

from staunton_chat.domain.entities.global_message import GlobalMessage
from staunton_chat.infrastructure.db.mappers.profile import model_to_sender
from staunton_chat.infrastructure.db.models.global_message import GlobalMessageModel
from staunton_chat.infrastructure.db.models.profile import ProfileModel


def model_to_entity(
    model: GlobalMessageModel,
    sender: ProfileModel | None = None,
) -> GlobalMessage:
    return GlobalMessage(
        id=model.id,
        sender_id=model.sender_id,
        content=model.content,
        created_at=model.created_at,
        sender=model_to_sender(sender) if sender is not None else None,
    )


def entity_to_model(entity: GlobalMessage) -> GlobalMessageModel:
    return GlobalMessageModel(
        id=entity.id,
        sender_id=entity.sender_id,
        content=entity.content,
        created_at=entity.created_at,
    )
