from __future__ import annotations

from typing import Protocol
from uuid import UUID

from staunton_chat.domain.entities.message import Message


class MessageReader(Protocol):
    async def list_recent(self, conversation_id: UUID, *, limit: int = 50) -> list[Message]:
        """Return the newest `limit` messages, oldest first."""
        ...

    async def count_unread_for_user(self, user_id: UUID) -> int:
        """Unread messages addressed to the user across all their conversations."""
        ...


class MessageWriter(Protocol):
    async def create(self, message: Message) -> Message: ...

    async def mark_read(self, conversation_id: UUID, reader_id: UUID) -> int:
        """Flip read=true on unread messages not sent by the reader. Return rows changed."""
        ...
