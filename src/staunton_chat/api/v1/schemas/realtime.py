from __future__ import annotations

from pydantic import BaseModel

from staunton_chat.domain.value_objects.enums import ConnectionStatus


class RealtimeStatusResponse(BaseModel):
    status: ConnectionStatus
    attempts: int
    online_users: list[str]
