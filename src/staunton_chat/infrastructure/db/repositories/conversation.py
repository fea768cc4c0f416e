from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from staunton_chat.application.dto.conversation import ConversationSummary
from staunton_chat.domain.entities.conversation import Conversation, normalize_pair
from staunton_chat.infrastructure.db.mappers import conversation as mapper
from staunton_chat.infrastructure.db.mappers import message as message_mapper
from staunton_chat.infrastructure.db.mappers import profile as profile_mapper
from staunton_chat.infrastructure.db.models.conversation import ConversationModel
from staunton_chat.infrastructure.db.models.message import MessageModel
from staunton_chat.infrastructure.db.models.profile import ProfileModel


class ConversationReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, conversation_id: UUID) -> Conversation | None:
        result = await self._session.get(ConversationModel, conversation_id)
        return mapper.model_to_entity(result) if result else None

    async def get_by_pair(self, a: UUID, b: UUID) -> Conversation | None:
        p1, p2 = normalize_pair(a, b)
        stmt = select(ConversationModel).where(
            ConversationModel.participant_1 == p1,
            ConversationModel.participant_2 == p2,
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def list_summaries_for_user(self, user_id: UUID) -> list[ConversationSummary]:
        p1 = aliased(ProfileModel)
        p2 = aliased(ProfileModel)
        stmt = (
            select(ConversationModel, p1, p2)
            .outerjoin(p1, p1.id == ConversationModel.participant_1)
            .outerjoin(p2, p2.id == ConversationModel.participant_2)
            .where(
                or_(
                    ConversationModel.participant_1 == user_id,
                    ConversationModel.participant_2 == user_id,
                )
            )
            .order_by(ConversationModel.last_message_at.desc(), ConversationModel.id)
        )
        rows = (await self._session.execute(stmt)).all()
        if not rows:
            return []

        ids = [conv.id for conv, _, _ in rows]
        unread = await self._unread_counts(ids, user_id)
        last_messages = await self._last_messages(ids)

        summaries: list[ConversationSummary] = []
        for conv, profile_1, profile_2 in rows:
            conversation = mapper.model_to_entity(conv)
            profiles = {p.id: p for p in (profile_1, profile_2) if p is not None}
            other = profiles.get(conversation.other_participant(user_id))
            last = last_messages.get(conv.id)
            summaries.append(
                ConversationSummary(
                    conversation=conversation,
                    other_user=profile_mapper.model_to_entity(other) if other else None,
                    unread_count=unread.get(conv.id, 0),
                    last_message=message_mapper.model_to_entity(last) if last else None,
                )
            )
        return summaries

    async def _unread_counts(self, ids: list[UUID], user_id: UUID) -> dict[UUID, int]:
        stmt = (
            select(MessageModel.conversation_id, func.count())
            .where(
                MessageModel.conversation_id.in_(ids),
                MessageModel.sender_id != user_id,
                MessageModel.read.is_(False),
            )
            .group_by(MessageModel.conversation_id)
        )
        result = await self._session.execute(stmt)
        return {conversation_id: count for conversation_id, count in result.all()}

    async def _last_messages(self, ids: list[UUID]) -> dict[UUID, MessageModel]:
        stmt = (
            select(MessageModel)
            .where(MessageModel.conversation_id.in_(ids))
            .distinct(MessageModel.conversation_id)
            .order_by(
                MessageModel.conversation_id,
                MessageModel.created_at.desc(),
                MessageModel.id.desc(),
            )
        )
        result = await self._session.execute(stmt)
        return {m.conversation_id: m for m in result.scalars().all()}


class ConversationWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_if_absent(self, a: UUID, b: UUID, ts: datetime) -> Conversation:
        """Insert the normalized pair; on conflict return the row another caller created."""
        p1, p2 = normalize_pair(a, b)
        stmt = (
            pg_insert(ConversationModel)
            .values(participant_1=p1, participant_2=p2, last_message_at=ts, created_at=ts)
            .on_conflict_do_nothing(constraint="uq_conversation_pair")
            .returning(ConversationModel)
        )
        result = await self._session.execute(stmt)
        row = result.scalar_one_or_none()
        if row is not None:
            return mapper.model_to_entity(row)

        existing = await self._session.execute(
            select(ConversationModel).where(
                ConversationModel.participant_1 == p1,
                ConversationModel.participant_2 == p2,
            )
        )
        return mapper.model_to_entity(existing.scalar_one())

    async def touch_last_message_at(
        self,
        conversation_id: UUID,
        ts: datetime,
    ) -> None:
        stmt = (
            update(ConversationModel)
            .where(ConversationModel.id == conversation_id)
            .values(last_message_at=ts)
        )
        await self._session.execute(stmt)
