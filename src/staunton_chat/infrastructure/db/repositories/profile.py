from __future__ import annotations

from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from staunton_chat.domain.entities.profile import Profile
from staunton_chat.infrastructure.db.mappers import profile as mapper
from staunton_chat.infrastructure.db.models.profile import ProfileModel


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class ProfileReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, user_id: UUID) -> Profile | None:
        result = await self._session.get(ProfileModel, user_id)
        return mapper.model_to_entity(result) if result else None

    async def search(
        self, query: str, *, limit: int = 20, exclude: UUID | None = None,
    ) -> list[Profile]:
        pattern = f"%{_escape_like(query)}%"
        stmt = select(ProfileModel).where(
            or_(
                ProfileModel.full_name.ilike(pattern, escape="\\"),
                ProfileModel.company_name.ilike(pattern, escape="\\"),
            )
        )
        if exclude is not None:
            stmt = stmt.where(ProfileModel.id != exclude)
        stmt = stmt.order_by(ProfileModel.full_name).limit(limit)
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]
