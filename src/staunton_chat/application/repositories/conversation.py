from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from staunton_chat.application.dto.conversation import ConversationSummary
from staunton_chat.domain.entities.conversation import Conversation


class ConversationReader(Protocol):
    async def get_by_id(self, conversation_id: UUID) -> Conversation | None: ...

    async def get_by_pair(self, a: UUID, b: UUID) -> Conversation | None:
        """Find the conversation between two users, in either order."""
        ...

    async def list_summaries_for_user(self, user_id: UUID) -> list[ConversationSummary]:
        """Conversations of a user with the other participant, unread count and last message.

        Ordered by last activity, newest first.
        """
        ...


class ConversationWriter(Protocol):
    async def create_if_absent(self, a: UUID, b: UUID, ts: datetime) -> Conversation:
        """Insert the conversation for the pair unless one exists. Return the stored row."""
        ...

    async def touch_last_message_at(self, conversation_id: UUID, ts: datetime) -> None: ...
