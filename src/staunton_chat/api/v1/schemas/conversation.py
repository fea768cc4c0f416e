from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from staunton_chat.api.v1.schemas.message import MessageResponse


class ProfileResponse(BaseModel):
    id: UUID
    email: str
    full_name: str | None
    company_name: str | None
    role: list[str]
    verification_status: str
    avatar_url: str | None
    location: str | None

    model_config = {"from_attributes": True}


class ConversationResponse(BaseModel):
    id: UUID
    participant_1: UUID
    participant_2: UUID
    last_message_at: datetime
    created_at: datetime

    model_config = {"from_attributes": True}


class ConversationSummaryResponse(BaseModel):
    conversation: ConversationResponse
    other_user: ProfileResponse | None
    unread_count: int
    last_message: MessageResponse | None

    model_config = {"from_attributes": True}


class CreateConversationRequest(BaseModel):
    other_user_id: UUID


class CreateConversationResponse(BaseModel):
    id: UUID


class UnreadCountResponse(BaseModel):
    unread_count: int
