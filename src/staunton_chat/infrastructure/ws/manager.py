"""In-process WebSocket connection manager.

Sends never block the caller: every connection owns a bounded queue drained
by its own writer task. A connection whose queue fills up is dropped.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any
from uuid import UUID

from fastapi import WebSocket

from staunton_chat.infrastructure.ws.protocol import WsOutbound

logger = logging.getLogger(__name__)

QUEUE_SIZE = 256


class Connection:
    """One accepted socket plus its outgoing queue."""

    def __init__(self, ws: WebSocket, principal_key: str) -> None:
        self.ws = ws
        self.principal_key = principal_key
        self.queue: asyncio.Queue[str] = asyncio.Queue(maxsize=QUEUE_SIZE)
        self.writer: asyncio.Task[None] | None = None

    async def _write_loop(self) -> None:
        try:
            while True:
                raw = await self.queue.get()
                await self.ws.send_text(raw)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.debug("WS send failed for %s", self.principal_key, exc_info=True)


class ConnectionManager:
    """Tracks WebSocket connections per principal and conversation subscriptions."""

    def __init__(self) -> None:
        self._connections: dict[str, set[Connection]] = {}
        self._subscriptions: dict[UUID, set[Connection]] = {}

    @property
    def connection_count(self) -> int:
        return sum(len(conns) for conns in self._connections.values())

    async def connect(self, ws: WebSocket, principal_key: str) -> Connection:
        await ws.accept()
        conn = Connection(ws, principal_key)
        conn.writer = asyncio.create_task(conn._write_loop(), name=f"ws-writer-{principal_key}")
        conn.writer.add_done_callback(lambda _t: self.disconnect(conn))
        self._connections.setdefault(principal_key, set()).add(conn)
        logger.debug("WS connected: %s (total=%d)", principal_key, self.connection_count)
        return conn

    def disconnect(self, conn: Connection) -> None:
        conns = self._connections.get(conn.principal_key)
        if conns and conn in conns:
            conns.discard(conn)
            if not conns:
                del self._connections[conn.principal_key]
            logger.debug("WS disconnected: %s", conn.principal_key)
        for subs in self._subscriptions.values():
            subs.discard(conn)
        if conn.writer is not None and not conn.writer.done():
            conn.writer.cancel()

    def subscribe(self, conn: Connection, conversation_id: UUID) -> None:
        self._subscriptions.setdefault(conversation_id, set()).add(conn)

    def unsubscribe(self, conn: Connection, conversation_id: UUID) -> None:
        subs = self._subscriptions.get(conversation_id)
        if subs:
            subs.discard(conn)
            if not subs:
                del self._subscriptions[conversation_id]

    def send(self, conn: Connection, event_type: str, data: dict[str, Any]) -> None:
        self._enqueue([conn], _frame(event_type, data))

    def broadcast_to_conversation(
        self,
        conversation_id: UUID,
        event_type: str,
        data: dict[str, Any],
    ) -> None:
        """Send to all connections subscribed to a conversation."""
        self._enqueue(list(self._subscriptions.get(conversation_id, ())), _frame(event_type, data))

    def broadcast_all(self, event_type: str, data: dict[str, Any]) -> None:
        conns = [c for group in self._connections.values() for c in group]
        self._enqueue(conns, _frame(event_type, data))

    async def close_all(self) -> None:
        conns = [c for group in self._connections.values() for c in group]
        for conn in conns:
            self.disconnect(conn)
        writers = [c.writer for c in conns if c.writer is not None]
        if writers:
            await asyncio.gather(*writers, return_exceptions=True)

    def _enqueue(self, conns: list[Connection], raw: str) -> None:
        dead: list[Connection] = []
        for conn in conns:
            try:
                conn.queue.put_nowait(raw)
            except asyncio.QueueFull:
                dead.append(conn)
        # Drop slow consumers
        for conn in dead:
            logger.warning("Dropping slow WS connection for %s", conn.principal_key)
            self.disconnect(conn)


def _frame(event_type: str, data: dict[str, Any]) -> str:
    return WsOutbound(type=event_type, data=data).model_dump_json()
