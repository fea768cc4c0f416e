from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from staunton_chat.application.dto.events import ChangeNotification
from staunton_chat.application.repositories.outbox import OutboxRecord
from staunton_chat.domain.value_objects.enums import OutboxStatus
from staunton_chat.infrastructure.db.models.outbox import OutboxMessageModel


class OutboxWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, notification: ChangeNotification) -> None:
        model = OutboxMessageModel(
            table_name=notification.table.value,
            operation=notification.operation.value,
            payload=notification.data,
        )
        self._session.add(model)
        await self._session.flush()

    async def fetch_pending(
        self, batch_size: int, now: datetime, max_attempts: int,
    ) -> list[OutboxRecord]:
        """Claim due records that have retries left. Locked rows are skipped."""
        stmt = (
            select(OutboxMessageModel)
            .where(
                OutboxMessageModel.status.in_([OutboxStatus.PENDING, OutboxStatus.FAILED]),
                OutboxMessageModel.attempts < max_attempts,
                (
                    OutboxMessageModel.next_retry_at.is_(None)
                    | (OutboxMessageModel.next_retry_at <= now)
                ),
            )
            .order_by(OutboxMessageModel.created_at.asc(), OutboxMessageModel.id.asc())
            .limit(batch_size)
            .with_for_update(skip_locked=True)
        )
        result = await self._session.execute(stmt)
        rows = result.scalars().all()

        if rows:
            ids = [r.id for r in rows]
            await self._session.execute(
                update(OutboxMessageModel)
                .where(OutboxMessageModel.id.in_(ids))
                .values(status=OutboxStatus.PROCESSING)
            )
            await self._session.flush()

        return [
            OutboxRecord(
                id=r.id,
                table=r.table_name,
                operation=r.operation,
                payload=r.payload,
                attempts=r.attempts,
            )
            for r in rows
        ]

    async def mark_sent(self, ids: list[int]) -> None:
        if not ids:
            return
        stmt = (
            update(OutboxMessageModel)
            .where(OutboxMessageModel.id.in_(ids))
            .values(status=OutboxStatus.SENT)
        )
        await self._session.execute(stmt)

    async def mark_failed(self, record_id: int, next_retry_at: datetime) -> None:
        stmt = (
            update(OutboxMessageModel)
            .where(OutboxMessageModel.id == record_id)
            .values(
                status=OutboxStatus.FAILED,
                attempts=OutboxMessageModel.attempts + 1,
                next_retry_at=next_retry_at,
            )
        )
        await self._session.execute(stmt)
