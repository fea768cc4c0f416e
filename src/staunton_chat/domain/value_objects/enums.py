from __future__ import annotations

from enum import StrEnum


class ConnectionStatus(StrEnum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"


class RealtimeEventType(StrEnum):
    DEAL_CREATED = "deal:created"
    DEAL_UPDATED = "deal:updated"
    DEAL_STATUS_CHANGED = "deal:status_changed"
    MESSAGE_RECEIVED = "message:received"
    PRICE_UPDATED = "price:updated"
    NOTIFICATION_NEW = "notification:new"
    USER_ONLINE = "user:online"
    USER_OFFLINE = "user:offline"
    SHIPMENT_UPDATED = "shipment:updated"
    PAYMENT_RECEIVED = "payment:received"
    DOCUMENT_UPLOADED = "document:uploaded"


class ChangeTable(StrEnum):
    """Tables whose row changes are relayed through the change feed."""

    MESSAGES = "messages"
    GLOBAL_MESSAGES = "global_messages"


class ChangeOperation(StrEnum):
    INSERT = "insert"
    UPDATE = "update"


class OutboxStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    SENT = "sent"
    FAILED = "failed"
