"""Realtime event bus: typed fan-out over a single upstream event source."""
from __future__ import annotations

import asyncio
import logging
from typing import Callable

from staunton_chat.domain.events.realtime_event import RealtimeEvent
from staunton_chat.domain.value_objects.enums import ConnectionStatus, RealtimeEventType
from staunton_chat.realtime.backoff import BackoffPolicy
from staunton_chat.realtime.sources import EventSource

logger = logging.getLogger(__name__)

Listener = Callable[[RealtimeEvent], None]
StatusListener = Callable[[ConnectionStatus], None]
Unsubscribe = Callable[[], None]


class RealtimeBus:
    """Distributes realtime events to per-kind and global listeners.

    One instance per application, created in the lifespan and passed to
    consumers. Listener registries are insertion-ordered sets, so a callback
    registered twice is delivered to once. All mutation happens on the event
    loop thread.

    Status transitions::

        disconnected -> connecting -> connected
        connected -> disconnected          (disconnect)
        any -> error -> connecting         (transport failure, after backoff)

    After ``backoff.max_retries`` consecutive failures the bus stays in
    ``error`` until ``connect()`` is called again. Events lost while the
    transport is down are not replayed.
    """

    def __init__(self, source: EventSource, backoff: BackoffPolicy | None = None) -> None:
        self._source = source
        self._backoff = backoff or BackoffPolicy()
        self._listeners: dict[RealtimeEventType, dict[Listener, None]] = {}
        self._global_listeners: dict[Listener, None] = {}
        self._status_listeners: dict[StatusListener, None] = {}
        self._status = ConnectionStatus.DISCONNECTED
        self._task: asyncio.Task[None] | None = None
        self._attempts = 0

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def attempts(self) -> int:
        """Consecutive failed connection attempts since the last success."""
        return self._attempts

    async def connect(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._attempts = 0
        self._task = asyncio.create_task(self._run(), name="realtime-bus")

    async def disconnect(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._set_status(ConnectionStatus.DISCONNECTED)

    def subscribe(self, kind: RealtimeEventType, callback: Listener) -> Unsubscribe:
        self._listeners.setdefault(kind, {})[callback] = None

        def unsubscribe() -> None:
            self._listeners.get(kind, {}).pop(callback, None)

        return unsubscribe

    def subscribe_all(self, callback: Listener) -> Unsubscribe:
        self._global_listeners[callback] = None

        def unsubscribe() -> None:
            self._global_listeners.pop(callback, None)

        return unsubscribe

    def on_status_change(self, callback: StatusListener) -> Unsubscribe:
        self._status_listeners[callback] = None

        def unsubscribe() -> None:
            self._status_listeners.pop(callback, None)

        return unsubscribe

    def emit(self, event: RealtimeEvent) -> None:
        """Deliver to kind listeners in registration order, then to global listeners."""
        for listener in list(self._listeners.get(event.type, {})):
            self._deliver(listener, event)
        for listener in list(self._global_listeners):
            self._deliver(listener, event)

    def _deliver(self, listener: Listener, event: RealtimeEvent) -> None:
        try:
            listener(event)
        except Exception:
            logger.exception("Realtime listener failed on %s event %s", event.type, event.id)

    def _set_status(self, status: ConnectionStatus) -> None:
        if status == self._status:
            return
        self._status = status
        logger.info("Realtime status: %s", status)
        for listener in list(self._status_listeners):
            try:
                listener(status)
            except Exception:
                logger.exception("Realtime status listener failed")

    async def _run(self) -> None:
        while True:
            self._set_status(ConnectionStatus.CONNECTING)
            try:
                async with self._source.open() as events:
                    self._set_status(ConnectionStatus.CONNECTED)
                    self._attempts = 0
                    async for event in events:
                        self.emit(event)
                raise ConnectionError("Realtime source closed the stream")
            except asyncio.CancelledError:
                raise
            except Exception:
                self._attempts += 1
                self._set_status(ConnectionStatus.ERROR)
                if self._backoff.exhausted(self._attempts):
                    logger.error(
                        "Realtime transport failed %d times in a row, giving up",
                        self._attempts,
                        exc_info=True,
                    )
                    return
                delay = self._backoff.delay(self._attempts)
                logger.warning(
                    "Realtime transport error, reconnecting in %.1fs (attempt %d/%d)",
                    delay,
                    self._attempts,
                    self._backoff.max_retries,
                    exc_info=True,
                )
                await asyncio.sleep(delay)
