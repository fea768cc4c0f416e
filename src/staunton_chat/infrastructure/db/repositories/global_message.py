from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import Select, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from staunton_chat.domain.entities.global_message import GlobalMessage
from staunton_chat.infrastructure.db.mappers import global_message as mapper
from staunton_chat.infrastructure.db.models.global_message import GlobalMessageModel
from staunton_chat.infrastructure.db.models.profile import ProfileModel


def _with_sender() -> Select:
    return select(GlobalMessageModel, ProfileModel).outerjoin(
        ProfileModel, ProfileModel.id == GlobalMessageModel.sender_id
    )


class GlobalMessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_with_sender(self, message_id: UUID) -> GlobalMessage | None:
        stmt = _with_sender().where(GlobalMessageModel.id == message_id)
        row = (await self._session.execute(stmt)).one_or_none()
        if row is None:
            return None
        message, sender = row
        return mapper.model_to_entity(message, sender)

    async def list_recent(self, *, limit: int = 100) -> list[GlobalMessage]:
        stmt = (
            _with_sender()
            .order_by(GlobalMessageModel.created_at.desc(), GlobalMessageModel.id.desc())
            .limit(limit)
        )
        return await self._fetch_oldest_first(stmt)

    async def list_before(self, before: datetime, *, limit: int = 50) -> list[GlobalMessage]:
        stmt = (
            _with_sender()
            .where(GlobalMessageModel.created_at < before)
            .order_by(GlobalMessageModel.created_at.desc(), GlobalMessageModel.id.desc())
            .limit(limit)
        )
        return await self._fetch_oldest_first(stmt)

    async def count_since(self, since: datetime | None = None) -> int:
        stmt = select(func.count(GlobalMessageModel.id))
        if since is not None:
            stmt = stmt.where(GlobalMessageModel.created_at >= since)
        result = await self._session.execute(stmt)
        return result.scalar_one()

    async def count_distinct_senders_since(self, since: datetime) -> int:
        stmt = select(func.count(func.distinct(GlobalMessageModel.sender_id))).where(
            GlobalMessageModel.created_at >= since
        )
        result = await self._session.execute(stmt)
        return result.scalar_one()

    async def _fetch_oldest_first(self, stmt: Select) -> list[GlobalMessage]:
        rows = (await self._session.execute(stmt)).all()
        return [mapper.model_to_entity(message, sender) for message, sender in reversed(rows)]


class GlobalMessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, message: GlobalMessage) -> GlobalMessage:
        model = mapper.entity_to_model(message)
        self._session.add(model)
        await self._session.flush()
        sender = await self._session.get(ProfileModel, model.sender_id)
        return mapper.model_to_entity(model, sender)

    async def delete_own(self, message_id: UUID, sender_id: UUID) -> bool:
        stmt = delete(GlobalMessageModel).where(
            GlobalMessageModel.id == message_id,
            GlobalMessageModel.sender_id == sender_id,
        )
        result = await self._session.execute(stmt)
        return bool(result.rowcount)
