from __future__ import annotations

import uuid
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from staunton_chat.application.dto.events import ChangeNotification
from staunton_chat.application.exceptions import ValidationError
from staunton_chat.domain.value_objects.enums import ChangeTable
from staunton_chat.realtime.change_feed import ChangeFeed
from staunton_chat.services import global_chat_service
from tests.conftest import ALICE, BOB, CAROL, T0, make_global_message, uow_factory_for


def _seed(uow, count: int) -> None:
    for i in range(count):
        uow.global_messages._messages.append(
            make_global_message(ALICE, f"m{i}", created_at=T0 + timedelta(seconds=i))
        )


@pytest.mark.asyncio
async def test_send_global_message(uow, clock):
    msg = await global_chat_service.send_global_message(ALICE, "  gm all  ", uow, clock=clock)

    assert msg.content == "gm all"
    assert msg.created_at == clock.now()
    assert msg.sender is not None
    assert msg.sender.company_name == "Northsea Fuels"
    assert uow.outbox._records[0].table == ChangeTable.GLOBAL_MESSAGES
    assert uow._committed is True


@pytest.mark.asyncio
async def test_send_global_message_rejects_empty(uow, clock):
    with pytest.raises(ValidationError):
        await global_chat_service.send_global_message(ALICE, "   ", uow, clock=clock)
    assert uow.global_messages._messages == []


@pytest.mark.asyncio
async def test_send_global_message_none_on_store_failure(uow, clock):
    uow.global_messages_w.create = AsyncMock(side_effect=RuntimeError("db down"))

    assert await global_chat_service.send_global_message(ALICE, "hi", uow, clock=clock) is None
    assert uow._rolled_back is True


@pytest.mark.asyncio
async def test_pagination_through_120_messages(uow):
    _seed(uow, 120)

    latest = await global_chat_service.get_global_messages(uow, limit=100)
    assert [m.content for m in latest] == [f"m{i}" for i in range(20, 120)]

    older = await global_chat_service.get_older_global_messages(latest[0].created_at, uow, limit=50)
    assert [m.content for m in older] == [f"m{i}" for i in range(20)]

    rest = await global_chat_service.get_older_global_messages(older[0].created_at, uow, limit=50)
    assert rest == []


@pytest.mark.asyncio
async def test_get_global_messages_empty_on_store_failure(uow):
    uow.global_messages.list_recent = AsyncMock(side_effect=RuntimeError("db down"))

    assert await global_chat_service.get_global_messages(uow) == []


@pytest.mark.asyncio
async def test_delete_only_own_message(uow):
    msg = make_global_message(ALICE, "oops")
    uow.global_messages._messages.append(msg)

    assert await global_chat_service.delete_global_message(msg.id, BOB, uow) is False
    assert await global_chat_service.delete_global_message(msg.id, ALICE, uow) is True
    assert uow.global_messages._messages == []


@pytest.mark.asyncio
async def test_online_count_uses_five_minute_window(uow, clock):
    uow.global_messages._messages.extend([
        make_global_message(ALICE, created_at=clock.now() - timedelta(minutes=1)),
        make_global_message(ALICE, created_at=clock.now() - timedelta(minutes=2)),
        make_global_message(BOB, created_at=clock.now() - timedelta(minutes=4)),
        make_global_message(CAROL, created_at=clock.now() - timedelta(minutes=6)),
    ])

    assert await global_chat_service.get_online_users_count(uow, clock=clock) == 2


@pytest.mark.asyncio
async def test_online_count_zero_on_store_failure(uow, clock):
    uow.global_messages.count_distinct_senders_since = AsyncMock(side_effect=RuntimeError)

    assert await global_chat_service.get_online_users_count(uow, clock=clock) == 0


@pytest.mark.asyncio
async def test_stats(uow, clock):
    uow.global_messages._messages.extend([
        make_global_message(ALICE, created_at=clock.now() - timedelta(hours=1)),
        make_global_message(BOB, created_at=clock.now() - timedelta(hours=2)),
        make_global_message(CAROL, created_at=clock.now() - timedelta(days=3)),
    ])

    stats = await global_chat_service.get_global_chat_stats(uow, clock=clock)

    assert stats.total_messages == 3
    assert stats.messages_last_24h == 2
    assert stats.active_users == 2


@pytest.mark.asyncio
async def test_subscribe_delivers_message_with_sender(uow):
    feed = ChangeFeed()
    msg = make_global_message(BOB, "live")
    uow.global_messages._messages.append(msg)
    received = []

    async def on_message(m):
        received.append(m)

    unsubscribe = global_chat_service.subscribe_to_global_chat(feed, uow_factory_for(uow), on_message)
    await feed.dispatch(ChangeNotification.global_message_inserted(msg))

    assert [m.id for m in received] == [msg.id]
    assert received[0].sender.full_name == "Bob Seller"

    unsubscribe()
    await feed.dispatch(ChangeNotification.global_message_inserted(msg))
    assert len(received) == 1


@pytest.mark.asyncio
async def test_subscribe_skips_deleted_rows(uow):
    feed = ChangeFeed()
    received = []

    async def on_message(m):
        received.append(m)

    global_chat_service.subscribe_to_global_chat(feed, uow_factory_for(uow), on_message)
    await feed.dispatch(ChangeNotification.global_message_inserted(make_global_message(ALICE)))

    assert received == []
