from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from staunton_chat.domain.entities.conversation import Conversation
from staunton_chat.domain.entities.global_message import GlobalMessage
from staunton_chat.domain.entities.message import Message
from staunton_chat.domain.value_objects.enums import ChangeOperation, ChangeTable


@dataclass(frozen=True, slots=True)
class ChangeNotification:
    """A row-level change delivered through the change feed.

    `data` is JSON-ready: ids and timestamps are strings. Direct-message
    notifications carry both participant ids so listeners can filter without
    a store lookup.
    """

    table: ChangeTable
    operation: ChangeOperation
    data: dict[str, Any]

    @property
    def event_type(self) -> str:
        return f"{self.table}.{self.operation}"

    @classmethod
    def from_event_type(cls, event_type: str, data: dict[str, Any]) -> ChangeNotification:
        table, _, operation = event_type.partition(".")
        return cls(ChangeTable(table), ChangeOperation(operation), data)

    @classmethod
    def message_inserted(cls, message: Message, conversation: Conversation) -> ChangeNotification:
        return cls(
            ChangeTable.MESSAGES,
            ChangeOperation.INSERT,
            {
                "id": str(message.id),
                "conversation_id": str(message.conversation_id),
                "sender_id": str(message.sender_id),
                "content": message.content,
                "read": message.read,
                "created_at": message.created_at.isoformat(),
                "participants": _participants(conversation),
            },
        )

    @classmethod
    def messages_read(
        cls, conversation: Conversation, reader_id: UUID, count: int,
    ) -> ChangeNotification:
        return cls(
            ChangeTable.MESSAGES,
            ChangeOperation.UPDATE,
            {
                "conversation_id": str(conversation.id),
                "reader_id": str(reader_id),
                "read": True,
                "count": count,
                "participants": _participants(conversation),
            },
        )

    @classmethod
    def global_message_inserted(cls, message: GlobalMessage) -> ChangeNotification:
        return cls(
            ChangeTable.GLOBAL_MESSAGES,
            ChangeOperation.INSERT,
            {
                "id": str(message.id),
                "sender_id": str(message.sender_id),
                "content": message.content,
                "created_at": message.created_at.isoformat(),
            },
        )


def _participants(conversation: Conversation) -> list[str]:
    return [str(user_id) for user_id in conversation.participants]
