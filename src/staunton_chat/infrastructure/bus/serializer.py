from __future__ import annotations

import json
from datetime import datetime
from typing import Any
from uuid import UUID

from staunton_chat.domain.events.realtime_event import RealtimeEvent
from staunton_chat.domain.value_objects.enums import RealtimeEventType


class _Encoder(json.JSONEncoder):
    def default(self, o: object) -> Any:
        if isinstance(o, UUID):
            return str(o)
        if isinstance(o, datetime):
            return o.isoformat()
        return super().default(o)


def serialize_event(event_type: str, payload: dict[str, Any]) -> str:
    envelope = {"event": event_type, "data": payload}
    return json.dumps(envelope, cls=_Encoder)


def deserialize_event(raw: str | bytes) -> tuple[str, dict[str, Any]]:
    data = json.loads(raw)
    return data["event"], data["data"]


def serialize_realtime_event(event: RealtimeEvent) -> str:
    return serialize_event(event.type.value, event.to_dict())


def deserialize_realtime_event(raw: str | bytes) -> RealtimeEvent:
    """Decode a realtime envelope. Raises ValueError on unknown kinds or bad payloads."""
    kind, data = deserialize_event(raw)
    event_type = RealtimeEventType(kind)
    payload = data.get("payload", {})
    if not isinstance(payload, dict):
        raise ValueError(f"Realtime payload must be an object, got {type(payload).__name__}")
    extra: dict[str, Any] = {}
    if data.get("id"):
        extra["id"] = str(data["id"])
    if data.get("timestamp"):
        extra["timestamp"] = datetime.fromisoformat(data["timestamp"])
    return RealtimeEvent(event_type, payload, **extra)
