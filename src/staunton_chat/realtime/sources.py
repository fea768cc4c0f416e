"""Upstream event sources consumed by the realtime bus."""
from __future__ import annotations

import asyncio
import random
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import AsyncIterator, Callable, Protocol

from staunton_chat.domain.events.realtime_event import RealtimeEvent
from staunton_chat.domain.value_objects.enums import RealtimeEventType


class EventSource(Protocol):
    def open(self) -> AbstractAsyncContextManager[AsyncIterator[RealtimeEvent]]:
        """Establish the transport and yield its event stream.

        Entering the context means the connection is established. Any exception
        raised while entering or iterating is a transport failure.
        """
        ...


def _price_tick(rng: random.Random, commodity: str, base: float, spread: float) -> RealtimeEvent:
    return RealtimeEvent(
        RealtimeEventType.PRICE_UPDATED,
        {
            "commodity": commodity,
            "price": round(base + (rng.random() - 0.5) * spread, 2),
            "change": round((rng.random() - 0.5) * spread / 2, 2),
        },
    )


def _deal_progress(rng: random.Random) -> RealtimeEvent:
    return RealtimeEvent(
        RealtimeEventType.DEAL_UPDATED,
        {
            "id": "deal-1",
            "reference": "STN-2024-000847",
            "field": "progress",
            "value": rng.randint(70, 99),
        },
    )


def _user_online(rng: random.Random) -> RealtimeEvent:
    return RealtimeEvent(
        RealtimeEventType.USER_ONLINE,
        {"userId": "user-1", "name": "John Smith"},
    )


def _shipment_position(rng: random.Random) -> RealtimeEvent:
    return RealtimeEvent(
        RealtimeEventType.SHIPMENT_UPDATED,
        {
            "dealId": "deal-1",
            "status": "in_transit",
            "location": {"lat": round(51.9 + rng.random(), 4), "lng": round(4.5 + rng.random(), 4)},
            "eta": "2024-12-30T14:00:00Z",
        },
    )


SIMULATED_EVENTS: list[Callable[[random.Random], RealtimeEvent]] = [
    lambda rng: _price_tick(rng, "BRENT", 74.50, 2.0),
    lambda rng: _price_tick(rng, "ULSD", 876.50, 10.0),
    _deal_progress,
    _user_online,
    _shipment_position,
]


class SimulatedEventSource:
    """Synthetic market/deal/presence feed for demos and local development."""

    def __init__(
        self,
        *,
        rng: random.Random | None = None,
        connect_delay: float = 0.5,
        initial_delay: float = 2.0,
        min_interval: float = 3.0,
        max_interval: float = 8.0,
    ) -> None:
        self._rng = rng or random.Random()
        self._connect_delay = connect_delay
        self._initial_delay = initial_delay
        self._min_interval = min_interval
        self._max_interval = max_interval

    @asynccontextmanager
    async def open(self) -> AsyncIterator[AsyncIterator[RealtimeEvent]]:
        await asyncio.sleep(self._connect_delay)
        yield self._events()

    async def _events(self) -> AsyncIterator[RealtimeEvent]:
        await asyncio.sleep(self._initial_delay)
        while True:
            factory = self._rng.choice(SIMULATED_EVENTS)
            yield factory(self._rng)
            await asyncio.sleep(self._rng.uniform(self._min_interval, self._max_interval))
