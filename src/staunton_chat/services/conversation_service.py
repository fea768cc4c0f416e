from __future__ import annotations

import logging
from uuid import UUID

from staunton_chat.application.dto.conversation import ConversationSummary
from staunton_chat.application.exceptions import ValidationError
from staunton_chat.application.policies.permissions import assert_participant
from staunton_chat.application.policies.recovery import rollback_quietly
from staunton_chat.application.ports.clock import Clock, SystemClock
from staunton_chat.application.uow import UnitOfWork
from staunton_chat.domain.entities.conversation import Conversation

logger = logging.getLogger(__name__)

_clock: Clock = SystemClock()


async def get_or_create_conversation(
    user_a: UUID,
    user_b: UUID,
    uow: UnitOfWork,
    *,
    clock: Clock = _clock,
) -> UUID | None:
    """Return the id of the conversation between two users, creating it on first contact.

    Argument order does not matter. Returns None when the conversation could
    not be established; callers must not read that as "nothing to do".
    """
    if user_a == user_b:
        raise ValidationError("Cannot start a conversation with yourself")

    try:
        existing = await uow.conversations.get_by_pair(user_a, user_b)
        if existing is not None:
            return existing.id

        conversation = await uow.conversations_w.create_if_absent(user_a, user_b, clock.now())
        await uow.commit()
    except Exception:
        logger.exception("Error getting/creating conversation for %s and %s", user_a, user_b)
        await rollback_quietly(uow)
        return None

    logger.info("Conversation %s ready for %s and %s", conversation.id, user_a, user_b)
    return conversation.id


async def get_conversations(user_id: UUID, uow: UnitOfWork) -> list[ConversationSummary]:
    try:
        return await uow.conversations.list_summaries_for_user(user_id)
    except Exception:
        logger.exception("Error fetching conversations for %s", user_id)
        await rollback_quietly(uow)
        return []


async def get_total_unread_count(user_id: UUID, uow: UnitOfWork) -> int:
    try:
        return await uow.messages.count_unread_for_user(user_id)
    except Exception:
        logger.exception("Error getting unread count for %s", user_id)
        await rollback_quietly(uow)
        return 0


async def get_conversation(
    conversation_id: UUID,
    user_id: UUID,
    uow: UnitOfWork,
) -> Conversation:
    """Load a conversation the user takes part in. Raises NotFoundError / ForbiddenError."""
    conversation = await uow.conversations.get_by_id(conversation_id)
    return assert_participant(conversation, user_id)
