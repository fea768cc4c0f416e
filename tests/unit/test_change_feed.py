from __future__ import annotations

import pytest

from staunton_chat.application.dto.events import ChangeNotification
from staunton_chat.domain.value_objects.enums import ChangeOperation, ChangeTable
from staunton_chat.realtime.change_feed import ChangeFeed
from tests.conftest import ALICE, BOB, make_conversation, make_global_message, make_message


def _inserted() -> ChangeNotification:
    conv = make_conversation(ALICE, BOB)
    return ChangeNotification.message_inserted(make_message(conv.id), conv)


def _collector():
    seen: list[ChangeNotification] = []

    async def callback(notification: ChangeNotification) -> None:
        seen.append(notification)

    return seen, callback


@pytest.mark.asyncio
async def test_routes_by_table():
    feed = ChangeFeed()
    messages, on_message = _collector()
    globals_, on_global = _collector()
    feed.subscribe(ChangeTable.MESSAGES, on_message)
    feed.subscribe(ChangeTable.GLOBAL_MESSAGES, on_global)

    await feed.dispatch(_inserted())

    assert len(messages) == 1
    assert globals_ == []


@pytest.mark.asyncio
async def test_operation_and_filter():
    feed = ChangeFeed()
    conv = make_conversation(ALICE, BOB)
    conv_id = conv.id
    seen, callback = _collector()
    feed.subscribe(
        ChangeTable.MESSAGES,
        callback,
        operation=ChangeOperation.INSERT,
        filters={"conversation_id": conv_id},
    )

    await feed.dispatch(_inserted())
    await feed.dispatch(ChangeNotification.messages_read(conv, BOB, 1))
    await feed.dispatch(ChangeNotification.message_inserted(make_message(conv_id), conv))

    assert len(seen) == 1
    assert seen[0].data["conversation_id"] == str(conv_id)


@pytest.mark.asyncio
async def test_unsubscribe():
    feed = ChangeFeed()
    seen, callback = _collector()
    unsubscribe = feed.subscribe(ChangeTable.GLOBAL_MESSAGES, callback)

    unsubscribe()
    unsubscribe()
    await feed.dispatch(ChangeNotification.global_message_inserted(make_global_message()))

    assert seen == []
    assert feed.subscriber_count(ChangeTable.GLOBAL_MESSAGES) == 0


@pytest.mark.asyncio
async def test_failing_callback_does_not_stop_dispatch():
    feed = ChangeFeed()
    seen, callback = _collector()

    async def boom(_n: ChangeNotification) -> None:
        raise RuntimeError("consumer bug")

    feed.subscribe(ChangeTable.MESSAGES, boom)
    feed.subscribe(ChangeTable.MESSAGES, callback)

    await feed.dispatch(_inserted())

    assert len(seen) == 1


@pytest.mark.asyncio
async def test_pubsub_entry_point_parses_and_ignores_unknown():
    feed = ChangeFeed()
    seen, callback = _collector()
    feed.subscribe(ChangeTable.MESSAGES, callback)
    notification = _inserted()

    await feed.on_pubsub_event("chat.message_created", {"id": "x"})
    await feed.on_pubsub_event(notification.event_type, notification.data)

    assert seen == [notification]
