from __future__ import annotations

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock

import pytest

from staunton_chat.domain.events.realtime_event import RealtimeEvent
from staunton_chat.domain.value_objects.enums import ChangeTable, RealtimeEventType
from staunton_chat.realtime.bus import RealtimeBus
from staunton_chat.realtime.change_feed import ChangeFeed
from staunton_chat.services import conversation_service, message_service
from staunton_chat.services.presence_service import OnlineUsersTracker, UnreadTracker
from tests.conftest import ALICE, BOB, CAROL, make_conversation, make_message, uow_factory_for


async def _relay(feed: ChangeFeed, uow) -> None:
    """Deliver queued outbox records the way the outbox worker would."""
    for notification in uow.outbox._records:
        await feed.dispatch(notification)
    uow.outbox._records.clear()


@pytest.mark.asyncio
async def test_unread_tracker_follows_messages_and_reads(uow, clock):
    conv = make_conversation(ALICE, BOB)
    uow.conversations.add(conv)
    uow.messages._messages.append(make_message(conv.id, BOB, "earlier"))
    feed = ChangeFeed()
    counts: list[int] = []
    tracker = UnreadTracker(ALICE, feed, uow_factory_for(uow), on_change=counts.append)

    assert await tracker.start() == 1

    await message_service.send_message(conv.id, BOB, "new offer", uow, clock=clock)
    await _relay(feed, uow)
    assert tracker.count == 2

    await message_service.mark_as_read(conv.id, ALICE, uow)
    await _relay(feed, uow)
    assert tracker.count == 0

    assert counts == [1, 2, 0]
    tracker.stop()


@pytest.mark.asyncio
async def test_unread_tracker_ignores_foreign_conversations(uow, clock):
    mine = make_conversation(ALICE, BOB)
    theirs = make_conversation(BOB, CAROL)
    uow.conversations.add(mine, theirs)
    feed = ChangeFeed()
    tracker = UnreadTracker(ALICE, feed, uow_factory_for(uow))
    await tracker.start()
    spy = AsyncMock(wraps=uow.messages.count_unread_for_user)
    uow.messages.count_unread_for_user = spy

    await message_service.send_message(theirs.id, CAROL, "private", uow, clock=clock)
    await _relay(feed, uow)

    spy.assert_not_awaited()
    assert tracker.count == 0


def _counting_factory(uow):
    """UoW factory that records how many units of work were opened."""
    opened = []
    inner = uow_factory_for(uow)

    @asynccontextmanager
    async def _factory():
        opened.append(1)
        async with inner() as u:
            yield u

    return _factory, opened


@pytest.mark.asyncio
async def test_foreign_messages_do_not_touch_the_store(uow, clock):
    theirs = make_conversation(BOB, CAROL)
    uow.conversations.add(theirs)
    feed = ChangeFeed()
    factory, opened = _counting_factory(uow)
    trackers = [UnreadTracker(ALICE, feed, factory) for _ in range(10)]
    for tracker in trackers:
        await tracker.start()
    assert len(opened) == 10

    for i in range(5):
        await message_service.send_message(theirs.id, BOB, f"quote {i}", uow, clock=clock)
    await _relay(feed, uow)

    assert len(opened) == 10
    assert all(t.count == 0 for t in trackers)


@pytest.mark.asyncio
async def test_unread_tracker_picks_up_new_conversation(uow, clock):
    feed = ChangeFeed()
    tracker = UnreadTracker(ALICE, feed, uow_factory_for(uow))
    await tracker.start()

    conv_id = await conversation_service.get_or_create_conversation(CAROL, ALICE, uow, clock=clock)
    await message_service.send_message(conv_id, CAROL, "hello there", uow, clock=clock)
    await _relay(feed, uow)

    assert tracker.count == 1


@pytest.mark.asyncio
async def test_unread_tracker_stop_unsubscribes(uow):
    feed = ChangeFeed()
    tracker = UnreadTracker(ALICE, feed, uow_factory_for(uow))
    await tracker.start()

    tracker.stop()

    assert feed.subscriber_count(ChangeTable.MESSAGES) == 0


def _presence(kind: RealtimeEventType, user_id: str) -> RealtimeEvent:
    return RealtimeEvent(kind, {"userId": user_id, "name": user_id})


def test_online_users_tracker():
    bus = RealtimeBus(AsyncMock())
    tracker = OnlineUsersTracker(bus)
    tracker.start()

    bus.emit(_presence(RealtimeEventType.USER_ONLINE, "user-1"))
    bus.emit(_presence(RealtimeEventType.USER_ONLINE, "user-2"))
    bus.emit(_presence(RealtimeEventType.USER_OFFLINE, "user-1"))
    assert tracker.online == frozenset({"user-2"})

    tracker.stop()
    bus.emit(_presence(RealtimeEventType.USER_ONLINE, "user-3"))
    assert tracker.online == frozenset({"user-2"})
