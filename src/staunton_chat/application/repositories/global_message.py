from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from staunton_chat.domain.entities.global_message import GlobalMessage


class GlobalMessageReader(Protocol):
    async def get_with_sender(self, message_id: UUID) -> GlobalMessage | None: ...

    async def list_recent(self, *, limit: int = 100) -> list[GlobalMessage]:
        """Newest `limit` messages joined with sender, oldest first."""
        ...

    async def list_before(self, before: datetime, *, limit: int = 50) -> list[GlobalMessage]:
        """Newest `limit` messages strictly older than `before`, oldest first."""
        ...

    async def count_since(self, since: datetime | None = None) -> int: ...

    async def count_distinct_senders_since(self, since: datetime) -> int: ...


class GlobalMessageWriter(Protocol):
    async def create(self, message: GlobalMessage) -> GlobalMessage: ...

    async def delete_own(self, message_id: UUID, sender_id: UUID) -> bool:
        """Delete a message only if it belongs to the sender."""
        ...
