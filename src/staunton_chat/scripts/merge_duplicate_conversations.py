"""Merge conversations that were created twice for the same pair of users.

Run once against a database created before conversations were stored as a
normalized pair. For every unordered pair with more than one row, messages
move to the oldest conversation and the extras are deleted. Remaining rows
are then rewritten so that participant_1 < participant_2, after which the
pair constraints can be applied.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import aggregate_order_by
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from staunton_chat.infrastructure.db.models import ConversationModel, MessageModel
from staunton_chat.infrastructure.db.session import AsyncSessionLocal

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MergeReport:
    pairs: int = 0
    removed: int = 0
    moved_messages: int = 0
    normalized: int = 0


async def merge_duplicates(session: AsyncSession) -> MergeReport:
    conv = ConversationModel
    low = func.least(conv.participant_1, conv.participant_2)
    high = func.greatest(conv.participant_1, conv.participant_2)
    ids = func.array_agg(aggregate_order_by(conv.id, conv.created_at.asc(), conv.id.asc()))

    groups = (
        await session.execute(
            select(low.label("low"), high.label("high"), ids.label("ids"))
            .group_by(low, high)
            .having(func.count() > 1)
        )
    ).all()

    removed = 0
    moved = 0
    for group in groups:
        keep, *extras = group.ids
        result = await session.execute(
            update(MessageModel)
            .where(MessageModel.conversation_id.in_(extras))
            .values(conversation_id=keep)
        )
        moved += result.rowcount or 0

        # Ranges over the whole group, not correlated to the row being updated.
        merged = aliased(ConversationModel)
        latest = (
            select(func.max(merged.last_message_at))
            .where(merged.id.in_(group.ids))
            .scalar_subquery()
        )
        await session.execute(update(conv).where(conv.id == keep).values(last_message_at=latest))
        await session.execute(delete(conv).where(conv.id.in_(extras)))
        removed += len(extras)
        logger.info("Merged %d duplicate(s) of %s/%s into %s", len(extras), group.low, group.high, keep)

    # Both SET expressions read the pre-update row, so this swaps the columns.
    swapped = await session.execute(
        update(conv)
        .where(conv.participant_1 > conv.participant_2)
        .values(participant_1=conv.participant_2, participant_2=conv.participant_1)
    )

    return MergeReport(
        pairs=len(groups),
        removed=removed,
        moved_messages=moved,
        normalized=swapped.rowcount or 0,
    )


async def run() -> MergeReport:
    async with AsyncSessionLocal() as session:
        async with session.begin():
            report = await merge_duplicates(session)
    logger.info(
        "Done: %d pair(s) merged, %d conversation(s) removed, %d message(s) moved, %d row(s) normalized",
        report.pairs,
        report.removed,
        report.moved_messages,
        report.normalized,
    )
    return report


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    asyncio.run(run())


if __name__ == "__main__":
    main()
