from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from staunton_chat.domain.entities.message import Message
from staunton_chat.infrastructure.db.mappers import message as mapper
from staunton_chat.infrastructure.db.models.conversation import ConversationModel
from staunton_chat.infrastructure.db.models.message import MessageModel


class MessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_recent(self, conversation_id: UUID, *, limit: int = 50) -> list[Message]:
        stmt = (
            select(MessageModel)
            .where(MessageModel.conversation_id == conversation_id)
            .order_by(MessageModel.created_at.desc(), MessageModel.id.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        newest_first = [mapper.model_to_entity(m) for m in result.scalars().all()]
        return newest_first[::-1]

    async def count_unread_for_user(self, user_id: UUID) -> int:
        stmt = (
            select(func.count(MessageModel.id))
            .join(ConversationModel, ConversationModel.id == MessageModel.conversation_id)
            .where(
                or_(
                    ConversationModel.participant_1 == user_id,
                    ConversationModel.participant_2 == user_id,
                ),
                MessageModel.sender_id != user_id,
                MessageModel.read.is_(False),
            )
        )
        result = await self._session.execute(stmt)
        return result.scalar_one()


class MessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, message: Message) -> Message:
        model = mapper.entity_to_model(message)
        self._session.add(model)
        await self._session.flush()
        return mapper.model_to_entity(model)

    async def mark_read(self, conversation_id: UUID, reader_id: UUID) -> int:
        stmt = (
            update(MessageModel)
            .where(
                MessageModel.conversation_id == conversation_id,
                MessageModel.sender_id != reader_id,
                MessageModel.read.is_(False),
            )
            .values(read=True)
        )
        result = await self._session.execute(stmt)
        return result.rowcount or 0
