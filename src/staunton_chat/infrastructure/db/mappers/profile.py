from __future__ import annotations

from staunton_chat.domain.entities.profile import Profile, SenderProfile
from staunton_chat.infrastructure.db.models.profile import ProfileModel


def model_to_entity(model: ProfileModel) -> Profile:
    return Profile(
        id=model.id,
        email=model.email,
        full_name=model.full_name,
        company_name=model.company_name,
        role=list(model.role or []),
        verification_status=model.verification_status,
        avatar_url=model.avatar_url,
        bio=model.bio,
        location=model.location,
        is_admin=model.is_admin,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def model_to_sender(model: ProfileModel) -> SenderProfile:
    return SenderProfile(
        id=model.id,
        full_name=model.full_name,
        company_name=model.company_name,
        avatar_url=model.avatar_url,
        role=list(model.role or []),
        verification_status=model.verification_status,
    )


def entity_to_model(entity: Profile) -> ProfileModel:
    return ProfileModel(
        id=entity.id,
        email=entity.email,
        full_name=entity.full_name,
        company_name=entity.company_name,
        role=list(entity.role),
        verification_status=entity.verification_status,
        avatar_url=entity.avatar_url,
        bio=entity.bio,
        location=entity.location,
        is_admin=entity.is_admin,
    )
