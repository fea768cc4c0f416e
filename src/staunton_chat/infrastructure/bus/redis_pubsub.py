"""Redis Pub/Sub: publish side, change-channel subscriber, realtime event source."""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Coroutine

import redis.asyncio as aioredis

from staunton_chat.domain.events.realtime_event import RealtimeEvent
from staunton_chat.infrastructure.bus.serializer import (
    deserialize_event,
    deserialize_realtime_event,
    serialize_event,
    serialize_realtime_event,
)
from staunton_chat.realtime.backoff import BackoffPolicy

logger = logging.getLogger(__name__)


class RedisPubSubPublisher:
    """Implements application.ports.bus.EventPublisher."""

    def __init__(self, redis: aioredis.Redis) -> None:
        self._redis = redis

    async def publish(self, channel: str, event_type: str, payload: dict[str, Any]) -> None:
        await self._redis.publish(channel, serialize_event(event_type, payload))


async def publish_realtime_event(redis: aioredis.Redis, channel: str, event: RealtimeEvent) -> None:
    """Publish a typed realtime event for every connected bus to pick up."""
    await redis.publish(channel, serialize_realtime_event(event))


OnEventCallback = Callable[[str, dict[str, Any]], Coroutine[Any, Any, None]]


class RedisPubSubSubscriber:
    """Background task that listens to a Redis channel and dispatches events.

    Resubscribes with exponential backoff when the connection drops.
    """

    def __init__(
        self,
        redis: aioredis.Redis,
        channel: str,
        callback: OnEventCallback,
        *,
        backoff: BackoffPolicy | None = None,
    ) -> None:
        self._redis = redis
        self._channel = channel
        self._callback = callback
        self._backoff = backoff or BackoffPolicy()
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        self._task = asyncio.create_task(self._run(), name="redis-pubsub-subscriber")
        logger.info("Redis Pub/Sub subscriber started on channel=%s", self._channel)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            logger.info("Redis Pub/Sub subscriber stopped")

    async def _run(self) -> None:
        attempt = 0
        while True:
            try:
                pubsub = self._redis.pubsub()
                await pubsub.subscribe(self._channel)
                attempt = 0
                await self._listen(pubsub)
            except asyncio.CancelledError:
                raise
            except Exception:
                attempt += 1
                delay = self._backoff.delay(attempt)
                logger.exception(
                    "Pub/Sub connection lost on %s, resubscribing in %.1fs",
                    self._channel,
                    delay,
                )
                await asyncio.sleep(delay)

    async def _listen(self, pubsub: aioredis.client.PubSub) -> None:
        try:
            async for message in pubsub.listen():
                if message["type"] != "message":
                    continue
                try:
                    event_type, data = deserialize_event(message["data"])
                    await self._callback(event_type, data)
                except Exception:
                    logger.exception("Error processing pubsub message")
        finally:
            await _close_pubsub(pubsub, self._channel)


class RedisEventSource:
    """Realtime bus upstream backed by a Redis Pub/Sub channel."""

    def __init__(self, redis: aioredis.Redis, channel: str) -> None:
        self._redis = redis
        self._channel = channel

    @asynccontextmanager
    async def open(self) -> AsyncIterator[AsyncIterator[RealtimeEvent]]:
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(self._channel)
        try:
            yield self._events(pubsub)
        finally:
            await _close_pubsub(pubsub, self._channel)

    async def _events(self, pubsub: aioredis.client.PubSub) -> AsyncIterator[RealtimeEvent]:
        async for message in pubsub.listen():
            if message["type"] != "message":
                continue
            try:
                yield deserialize_realtime_event(message["data"])
            except (KeyError, ValueError):
                logger.debug("Skipping malformed realtime message on %s", self._channel, exc_info=True)


async def _close_pubsub(pubsub: aioredis.client.PubSub, channel: str) -> None:
    try:
        await pubsub.unsubscribe(channel)
        await pubsub.aclose()
    except Exception:
        logger.debug("Error closing pubsub for %s", channel, exc_info=True)
