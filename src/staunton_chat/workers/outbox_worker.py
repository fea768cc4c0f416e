"""Outbox worker: relays committed change notifications to the Redis change channel.

Delivery is at-least-once. A record is marked sent only after publish
succeeds, so a crash in between republishes it.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta

import redis.asyncio as aioredis

from staunton_chat.application.ports.bus import EventPublisher
from staunton_chat.application.ports.clock import Clock, SystemClock
from staunton_chat.application.uow import UnitOfWork
from staunton_chat.config import settings
from staunton_chat.infrastructure.bus.redis_pubsub import RedisPubSubPublisher
from staunton_chat.infrastructure.db.session import uow_scope
from staunton_chat.realtime.backoff import BackoffPolicy

logger = logging.getLogger(__name__)

RETRY_BACKOFF = BackoffPolicy(base_delay=5.0, multiplier=2.0, max_delay=300.0)


def next_retry_at(attempts: int, now: datetime) -> datetime:
    return now + timedelta(seconds=RETRY_BACKOFF.delay(attempts + 1))


async def run_outbox_worker() -> None:
    redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    publisher = RedisPubSubPublisher(redis)
    clock = SystemClock()

    logger.info(
        "Outbox worker started (poll=%.1fs, batch=%d, max_attempts=%d, channel=%s)",
        settings.OUTBOX_POLL_INTERVAL,
        settings.OUTBOX_BATCH_SIZE,
        settings.OUTBOX_MAX_ATTEMPTS,
        settings.CHANGES_CHANNEL,
    )

    try:
        while True:
            try:
                async with uow_scope() as uow:
                    await process_batch(uow, publisher, clock)
            except Exception:
                logger.exception("Outbox worker loop error")
            await asyncio.sleep(settings.OUTBOX_POLL_INTERVAL)
    finally:
        await redis.aclose()


async def process_batch(
    uow: UnitOfWork,
    publisher: EventPublisher,
    clock: Clock,
) -> int:
    """Publish one batch of due records. Returns the number published."""
    now = clock.now()
    batch = await uow.outbox.fetch_pending(
        settings.OUTBOX_BATCH_SIZE, now, settings.OUTBOX_MAX_ATTEMPTS,
    )
    if not batch:
        return 0

    sent_ids: list[int] = []
    for record in batch:
        try:
            await publisher.publish(settings.CHANGES_CHANNEL, record.event_type, record.payload)
            sent_ids.append(record.id)
        except Exception:
            logger.exception("Failed to publish outbox record %d", record.id)
            await uow.outbox.mark_failed(record.id, next_retry_at(record.attempts, now))

    if sent_ids:
        await uow.outbox.mark_sent(sent_ids)

    await uow.commit()
    if sent_ids:
        logger.info("Published %d outbox records", len(sent_ids))
    return len(sent_ids)


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    asyncio.run(run_outbox_worker())


if __name__ == "__main__":
    main()
