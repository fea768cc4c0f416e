from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from staunton_chat.domain.entities.profile import SenderProfile


@dataclass(frozen=True, slots=True)
class GlobalMessage:
    id: UUID
    sender_id: UUID
    content: str
    created_at: datetime
    sender: SenderProfile | None = None
