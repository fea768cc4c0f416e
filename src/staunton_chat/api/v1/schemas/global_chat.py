from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class SenderResponse(BaseModel):
    id: UUID
    full_name: str | None
    company_name: str | None
    avatar_url: str | None
    role: list[str]
    verification_status: str

    model_config = {"from_attributes": True}


class GlobalMessageResponse(BaseModel):
    id: UUID
    sender_id: UUID
    content: str
    created_at: datetime
    sender: SenderResponse | None = None

    model_config = {"from_attributes": True}


class SendGlobalMessageRequest(BaseModel):
    content: str = Field(max_length=4000)


class OnlineCountResponse(BaseModel):
    online_count: int


class GlobalChatStatsResponse(BaseModel):
    total_messages: int
    active_users: int
    messages_last_24h: int

    model_config = {"from_attributes": True}
