from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from typing import Awaitable, Callable

from staunton_chat.application.dto.events import ChangeNotification
from staunton_chat.application.dto.global_chat import GlobalChatStats
from staunton_chat.application.exceptions import ValidationError
from staunton_chat.application.policies.recovery import rollback_quietly
from staunton_chat.application.ports.clock import Clock, SystemClock, window_start
from staunton_chat.application.uow import UnitOfWork, UoWFactory
from staunton_chat.domain.entities.global_message import GlobalMessage
from staunton_chat.domain.value_objects.enums import ChangeOperation, ChangeTable
from staunton_chat.realtime.change_feed import ChangeFeed, Unsubscribe

logger = logging.getLogger(__name__)

_clock: Clock = SystemClock()

ONLINE_WINDOW = timedelta(minutes=5)
STATS_WINDOW = timedelta(hours=24)


async def send_global_message(
    sender_id: uuid.UUID,
    content: str,
    uow: UnitOfWork,
    *,
    clock: Clock = _clock,
) -> GlobalMessage | None:
    text = (content or "").strip()
    if not text:
        raise ValidationError("Message content is empty")

    try:
        message = await uow.global_messages_w.create(
            GlobalMessage(
                id=uuid.uuid4(),
                sender_id=sender_id,
                content=text,
                created_at=clock.now(),
            )
        )
        await uow.outbox.add(ChangeNotification.global_message_inserted(message))
        await uow.commit()
    except Exception:
        logger.exception("Error sending global message from %s", sender_id)
        await rollback_quietly(uow)
        return None

    return message


async def get_global_messages(uow: UnitOfWork, *, limit: int = 100) -> list[GlobalMessage]:
    """Latest `limit` messages, oldest first."""
    try:
        return await uow.global_messages.list_recent(limit=limit)
    except Exception:
        logger.exception("Error fetching global messages")
        await rollback_quietly(uow)
        return []


async def get_older_global_messages(
    before: datetime,
    uow: UnitOfWork,
    *,
    limit: int = 50,
) -> list[GlobalMessage]:
    """Page of messages strictly older than `before`, oldest first.

    An empty page means the beginning of history was reached.
    """
    try:
        return await uow.global_messages.list_before(before, limit=limit)
    except Exception:
        logger.exception("Error fetching global messages before %s", before)
        await rollback_quietly(uow)
        return []


async def delete_global_message(
    message_id: uuid.UUID,
    user_id: uuid.UUID,
    uow: UnitOfWork,
) -> bool:
    try:
        deleted = await uow.global_messages_w.delete_own(message_id, user_id)
        await uow.commit()
    except Exception:
        logger.exception("Error deleting global message %s", message_id)
        await rollback_quietly(uow)
        return False
    return deleted


async def get_online_users_count(uow: UnitOfWork, *, clock: Clock = _clock) -> int:
    """Distinct senders in the last five minutes.

    A heuristic: there is no heartbeat, so silent users count as offline.
    """
    try:
        return await uow.global_messages.count_distinct_senders_since(
            window_start(clock, ONLINE_WINDOW)
        )
    except Exception:
        logger.exception("Error getting online users count")
        await rollback_quietly(uow)
        return 0


async def get_global_chat_stats(uow: UnitOfWork, *, clock: Clock = _clock) -> GlobalChatStats:
    since = window_start(clock, STATS_WINDOW)
    try:
        return GlobalChatStats(
            total_messages=await uow.global_messages.count_since(),
            active_users=await uow.global_messages.count_distinct_senders_since(since),
            messages_last_24h=await uow.global_messages.count_since(since),
        )
    except Exception:
        logger.exception("Error getting global chat stats")
        await rollback_quietly(uow)
        return GlobalChatStats()


def subscribe_to_global_chat(
    feed: ChangeFeed,
    uow_factory: UoWFactory,
    on_message: Callable[[GlobalMessage], Awaitable[None]],
) -> Unsubscribe:
    """Invoke `on_message` for every new global message, joined with its sender.

    Insert notifications carry only the raw row, so each one costs a read.
    """

    async def _on_insert(notification: ChangeNotification) -> None:
        message_id = uuid.UUID(notification.data["id"])
        async with uow_factory() as uow:
            try:
                message = await uow.global_messages.get_with_sender(message_id)
            except Exception:
                logger.exception("Error fetching global message %s", message_id)
                return
        if message is not None:
            await on_message(message)

    return feed.subscribe(
        ChangeTable.GLOBAL_MESSAGES,
        _on_insert,
        operation=ChangeOperation.INSERT,
    )
