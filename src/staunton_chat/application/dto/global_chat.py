from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class GlobalChatStats:
    total_messages: int = 0
    active_users: int = 0
    messages_last_24h: int = 0
