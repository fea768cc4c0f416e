"""WebSocket message envelope models."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class WsInbound(BaseModel):
    """Client → Server."""

    # ping | subscribe | unsubscribe | message.send | mark_read | global.send
    type: str
    data: dict[str, Any] = {}


class WsOutbound(BaseModel):
    """Server → Client."""

    # pong | subscribed | message.created | message.sent | messages.read
    # global_message.created | global_message.sent | unread.count | realtime.event
    # realtime.status | error
    type: str
    data: dict[str, Any] = {}


def error_frame(code: str, **extra: Any) -> WsOutbound:
    return WsOutbound(type="error", data={"code": code, **extra})
