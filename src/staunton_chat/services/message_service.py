from __future__ import annotations

import logging
import uuid

from staunton_chat.application.dto.events import ChangeNotification
from staunton_chat.application.exceptions import ValidationError
from staunton_chat.application.policies.recovery import rollback_quietly
from staunton_chat.application.ports.clock import Clock, SystemClock
from staunton_chat.application.uow import UnitOfWork
from staunton_chat.domain.entities.message import Message

logger = logging.getLogger(__name__)

_clock: Clock = SystemClock()


async def send_message(
    conversation_id: uuid.UUID,
    sender_id: uuid.UUID,
    content: str,
    uow: UnitOfWork,
    *,
    clock: Clock = _clock,
) -> Message | None:
    """Store a direct message and queue its change notification.

    Returns None if the write is rejected (unknown conversation, sender not a
    participant, storage failure).
    """
    text = (content or "").strip()
    if not text:
        raise ValidationError("Message content is empty")

    try:
        conversation = await uow.conversations.get_by_id(conversation_id)
        if conversation is None or not conversation.has_participant(sender_id):
            logger.warning(
                "Rejected message from %s to conversation %s: not a participant",
                sender_id,
                conversation_id,
            )
            return None

        # Never older than the conversation's last message.
        created_at = max(clock.now(), conversation.last_message_at)
        message = await uow.messages_w.create(
            Message(
                id=uuid.uuid4(),
                conversation_id=conversation_id,
                sender_id=sender_id,
                content=text,
                read=False,
                created_at=created_at,
            )
        )
        await uow.conversations_w.touch_last_message_at(conversation_id, message.created_at)
        await uow.outbox.add(ChangeNotification.message_inserted(message, conversation))
        await uow.commit()
    except Exception:
        logger.exception("Error sending message to conversation %s", conversation_id)
        await rollback_quietly(uow)
        return None

    return message


async def get_messages(
    conversation_id: uuid.UUID,
    uow: UnitOfWork,
    *,
    limit: int = 50,
) -> list[Message]:
    """Most recent `limit` messages, oldest first."""
    try:
        return await uow.messages.list_recent(conversation_id, limit=limit)
    except Exception:
        logger.exception("Error fetching messages for conversation %s", conversation_id)
        await rollback_quietly(uow)
        return []


async def mark_as_read(
    conversation_id: uuid.UUID,
    reader_id: uuid.UUID,
    uow: UnitOfWork,
) -> int:
    """Mark the other participant's messages as read. Returns rows changed; idempotent."""
    try:
        conversation = await uow.conversations.get_by_id(conversation_id)
        if conversation is None or not conversation.has_participant(reader_id):
            return 0

        changed = await uow.messages_w.mark_read(conversation_id, reader_id)
        if changed:
            await uow.outbox.add(
                ChangeNotification.messages_read(conversation, reader_id, changed)
            )
        await uow.commit()
    except Exception:
        logger.exception("Error marking messages as read in %s", conversation_id)
        await rollback_quietly(uow)
        return 0

    return changed
