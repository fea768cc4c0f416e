from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from staunton_chat.application.dto.events import ChangeNotification


class OutboxWriter(Protocol):
    async def add(self, notification: ChangeNotification) -> None: ...

    async def fetch_pending(
        self, batch_size: int, now: datetime, max_attempts: int,
    ) -> list[OutboxRecord]: ...

    async def mark_sent(self, ids: list[int]) -> None: ...

    async def mark_failed(self, record_id: int, next_retry_at: datetime) -> None: ...


class OutboxRecord:
    """Lightweight read-model for the outbox worker."""

    __slots__ = ("id", "table", "operation", "payload", "attempts")

    def __init__(
        self,
        id: int,
        table: str,
        operation: str,
        payload: dict[str, Any],
        attempts: int,
    ) -> None:
        self.id = id
        self.table = table
        self.operation = operation
        self.payload = payload
        self.attempts = attempts

    @property
    def event_type(self) -> str:
        return f"{self.table}.{self.operation}"
