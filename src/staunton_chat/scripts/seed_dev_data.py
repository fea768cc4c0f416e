"""Seed development data: two traders, a conversation between them, and some global chat."""
from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone

from staunton_chat.application.ports.clock import Clock
from staunton_chat.domain.entities.profile import Profile
from staunton_chat.infrastructure.db import models  # noqa: F401  (registers tables)
from staunton_chat.infrastructure.db.base import Base
from staunton_chat.infrastructure.db.mappers.profile import entity_to_model
from staunton_chat.infrastructure.db.session import AsyncSessionLocal, engine
from staunton_chat.infrastructure.db.uow import SqlAlchemyUoW
from staunton_chat.services import conversation_service, global_chat_service, message_service

logger = logging.getLogger(__name__)

BUYER_ID = uuid.UUID("00000000-0000-4000-8000-000000000001")
SELLER_ID = uuid.UUID("00000000-0000-4000-8000-000000000002")


class _SteppingClock:
    """Hands out timestamps one minute apart so seeded rows have a stable order."""

    def __init__(self, start: datetime) -> None:
        self._next = start

    def now(self) -> datetime:
        current = self._next
        self._next += timedelta(minutes=1)
        return current


PROFILES = [
    Profile(
        id=BUYER_ID,
        email="buyer@staunton.dev",
        full_name="Alice Buyer",
        company_name="Northsea Fuels Ltd",
        role=["buyer"],
        verification_status="verified",
        location="Rotterdam",
    ),
    Profile(
        id=SELLER_ID,
        email="seller@staunton.dev",
        full_name="Bob Seller",
        company_name="Gulf Refining Co",
        role=["seller", "trader"],
        verification_status="pending",
        location="Houston",
    ),
]

CONVERSATION = [
    (BUYER_ID, "Hi, is the ULSD cargo for December still available?"),
    (SELLER_ID, "Yes, 30kt loading Rotterdam, FOB."),
    (BUYER_ID, "What's your price indication?"),
    (SELLER_ID, "Platts +12.50, subject to final nomination."),
]

GLOBAL_CHAT = [
    (SELLER_ID, "Brent firming this morning, anyone seeing more tenders?"),
    (BUYER_ID, "Quiet on our side, looking for jet in ARA."),
]


async def seed() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    clock: Clock = _SteppingClock(datetime.now(timezone.utc) - timedelta(hours=1))

    async with AsyncSessionLocal() as session:
        for profile in PROFILES:
            await session.merge(entity_to_model(profile))
        await session.commit()

        uow = SqlAlchemyUoW(session)
        conversation_id = await conversation_service.get_or_create_conversation(
            BUYER_ID, SELLER_ID, uow, clock=clock,
        )
        if conversation_id is None:
            raise RuntimeError("Could not create seed conversation")

        for sender_id, content in CONVERSATION:
            await message_service.send_message(conversation_id, sender_id, content, uow, clock=clock)
        for sender_id, content in GLOBAL_CHAT:
            await global_chat_service.send_global_message(sender_id, content, uow, clock=clock)

        logger.info(
            "Seeded %d profiles, conversation %s with %d messages, %d global messages",
            len(PROFILES),
            conversation_id,
            len(CONVERSATION),
            len(GLOBAL_CHAT),
        )


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed())


if __name__ == "__main__":
    main()
