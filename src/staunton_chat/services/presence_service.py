"""Derived presence and unread views.

There is no presence protocol: "online" is either the recent-senders
heuristic in global_chat_service or the user:online / user:offline bus events
tracked here.
"""
from __future__ import annotations

import logging
from typing import Any, Callable
from uuid import UUID

from staunton_chat.application.dto.events import ChangeNotification
from staunton_chat.application.uow import UoWFactory
from staunton_chat.domain.events.realtime_event import RealtimeEvent
from staunton_chat.domain.value_objects.enums import ChangeTable, RealtimeEventType
from staunton_chat.realtime.bus import RealtimeBus
from staunton_chat.realtime.change_feed import ChangeFeed, Unsubscribe
from staunton_chat.services import conversation_service

logger = logging.getLogger(__name__)


class UnreadTracker:
    """Keeps one user's unread badge current.

    The count is recomputed from the store on start and on every change-feed
    notification about messages in one of the user's conversations. Whether a
    notification concerns the user is decided from its participant ids alone.
    """

    def __init__(
        self,
        user_id: UUID,
        feed: ChangeFeed,
        uow_factory: UoWFactory,
        on_change: Callable[[int], Any] | None = None,
    ) -> None:
        self._user_id = user_id
        self._key = str(user_id)
        self._feed = feed
        self._uow_factory = uow_factory
        self._on_change = on_change
        self._count = 0
        self._unsubscribe: Unsubscribe | None = None

    @property
    def count(self) -> int:
        return self._count

    async def start(self) -> int:
        """Load the initial count, report it, and start following changes."""
        self._count = await self._recount()
        self._notify()
        if self._unsubscribe is None:
            self._unsubscribe = self._feed.subscribe(ChangeTable.MESSAGES, self._on_message_change)
        return self._count

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def refresh(self) -> int:
        count = await self._recount()
        if count != self._count:
            logger.debug("Unread count for %s: %d -> %d", self._user_id, self._count, count)
            self._count = count
            self._notify()
        return count

    async def _recount(self) -> int:
        async with self._uow_factory() as uow:
            return await conversation_service.get_total_unread_count(self._user_id, uow)

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self._count)

    async def _on_message_change(self, notification: ChangeNotification) -> None:
        if self._key not in notification.data.get("participants", ()):
            return
        await self.refresh()


class OnlineUsersTracker:
    """Set of user ids currently announced online on the realtime bus."""

    def __init__(self, bus: RealtimeBus) -> None:
        self._bus = bus
        self._online: set[str] = set()
        self._unsubscribers: list[Unsubscribe] = []

    @property
    def online(self) -> frozenset[str]:
        return frozenset(self._online)

    def start(self) -> None:
        if self._unsubscribers:
            return
        self._unsubscribers = [
            self._bus.subscribe(RealtimeEventType.USER_ONLINE, self._on_online),
            self._bus.subscribe(RealtimeEventType.USER_OFFLINE, self._on_offline),
        ]

    def stop(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def _on_online(self, event: RealtimeEvent) -> None:
        user_id = event.payload.get("userId")
        if user_id:
            self._online.add(str(user_id))

    def _on_offline(self, event: RealtimeEvent) -> None:
        self._online.discard(str(event.payload.get("userId")))
