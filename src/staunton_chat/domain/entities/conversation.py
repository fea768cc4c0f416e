from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


def normalize_pair(a: UUID, b: UUID) -> tuple[UUID, UUID]:
    """Order a participant pair so that each unordered pair has one key."""
    return (a, b) if a <= b else (b, a)


@dataclass(frozen=True, slots=True)
class Conversation:
    id: UUID
    participant_1: UUID
    participant_2: UUID
    last_message_at: datetime
    created_at: datetime

    def has_participant(self, user_id: UUID) -> bool:
        return user_id in (self.participant_1, self.participant_2)

    @property
    def participants(self) -> tuple[UUID, UUID]:
        return self.participant_1, self.participant_2

    def other_participant(self, user_id: UUID) -> UUID:
        return self.participant_2 if self.participant_1 == user_id else self.participant_1
