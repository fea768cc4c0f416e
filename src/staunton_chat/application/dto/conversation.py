from __future__ import annotations

from dataclasses import dataclass

from staunton_chat.domain.entities.conversation import Conversation
from staunton_chat.domain.entities.message import Message
from staunton_chat.domain.entities.profile import Profile


@dataclass(frozen=True, slots=True)
class ConversationSummary:
    """A conversation as seen by one of its participants."""

    conversation: Conversation
    other_user: Profile | None
    unread_count: int
    last_message: Message | None
