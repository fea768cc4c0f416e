"""In-process fan-out of row-change notifications received from the push channel."""
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from staunton_chat.application.dto.events import ChangeNotification
from staunton_chat.domain.value_objects.enums import ChangeOperation, ChangeTable

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[ChangeNotification], Awaitable[None]]
Unsubscribe = Callable[[], None]


class _Subscription:
    __slots__ = ("callback", "operation", "filters")

    def __init__(
        self,
        callback: ChangeCallback,
        operation: ChangeOperation | None,
        filters: dict[str, str],
    ) -> None:
        self.callback = callback
        self.operation = operation
        self.filters = filters

    def matches(self, notification: ChangeNotification) -> bool:
        if self.operation is not None and notification.operation != self.operation:
            return False
        return all(str(notification.data.get(k)) == v for k, v in self.filters.items())


class ChangeFeed:
    """Subscribe-by-table-and-filter view over the change channel.

    Delivery is at-least-once: the outbox relay may publish a row twice, so
    consumers de-duplicate by row id.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[ChangeTable, list[_Subscription]] = {}

    def subscribe(
        self,
        table: ChangeTable,
        callback: ChangeCallback,
        *,
        operation: ChangeOperation | None = None,
        filters: dict[str, Any] | None = None,
    ) -> Unsubscribe:
        sub = _Subscription(
            callback,
            operation,
            {k: str(v) for k, v in (filters or {}).items()},
        )
        self._subscriptions.setdefault(table, []).append(sub)

        def unsubscribe() -> None:
            subs = self._subscriptions.get(table, [])
            if sub in subs:
                subs.remove(sub)

        return unsubscribe

    def subscriber_count(self, table: ChangeTable) -> int:
        return len(self._subscriptions.get(table, []))

    async def dispatch(self, notification: ChangeNotification) -> None:
        for sub in list(self._subscriptions.get(notification.table, [])):
            if not sub.matches(notification):
                continue
            try:
                await sub.callback(notification)
            except Exception:
                logger.exception("Change feed listener failed on %s", notification.event_type)

    async def on_pubsub_event(self, event_type: str, data: dict[str, Any]) -> None:
        """Entry point for the Redis Pub/Sub subscriber."""
        try:
            notification = ChangeNotification.from_event_type(event_type, data)
        except ValueError:
            logger.debug("Ignoring unknown change event: %s", event_type)
            return
        await self.dispatch(notification)
