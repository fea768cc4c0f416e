from __future__ import annotations

import asyncio
import logging
from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect

from staunton_chat.api.deps import (
    get_verifier,
    ws_change_feed,
    ws_manager,
    ws_realtime_bus,
    ws_uow_factory,
)
from staunton_chat.api.v1.schemas.message import MessageResponse
from staunton_chat.application.dto.events import ChangeNotification
from staunton_chat.application.dto.principal import Principal
from staunton_chat.application.exceptions import AppError, ValidationError
from staunton_chat.application.uow import UoWFactory
from staunton_chat.config import settings
from staunton_chat.infrastructure.ws.manager import Connection, ConnectionManager
from staunton_chat.infrastructure.ws.protocol import WsInbound, error_frame
from staunton_chat.realtime.bus import RealtimeBus
from staunton_chat.realtime.change_feed import ChangeFeed
from staunton_chat.services import conversation_service, global_chat_service, message_service
from staunton_chat.services.presence_service import UnreadTracker

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])


async def _authenticate(token: str) -> Principal | None:
    try:
        verifier = get_verifier()
        return await verifier.verify(token)
    except Exception:
        logger.debug("WS auth failed", exc_info=True)
        return None


@router.websocket("/ws/realtime")
async def ws_realtime(
    websocket: WebSocket,
    manager: Annotated[ConnectionManager, Depends(ws_manager)],
    feed: Annotated[ChangeFeed, Depends(ws_change_feed)],
    bus: Annotated[RealtimeBus, Depends(ws_realtime_bus)],
    uow_factory: Annotated[UoWFactory, Depends(ws_uow_factory)],
    token: str = Query(...),
) -> None:
    principal = await _authenticate(token)
    if principal is None:
        await websocket.close(code=4001, reason="Authentication failed")
        return

    conn = await manager.connect(websocket, principal.principal_key)
    manager.send(conn, "realtime.status", {"status": bus.status})

    tracker = UnreadTracker(
        principal.user_id,
        feed,
        uow_factory,
        on_change=lambda count: manager.send(conn, "unread.count", {"count": count}),
    )
    heartbeat_task = asyncio.create_task(
        _heartbeat(manager, conn), name=f"ws-heartbeat-{principal.principal_key}",
    )
    session = _Session(conn, principal, manager, uow_factory)
    try:
        await tracker.start()
        await session.read_loop()
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %s", principal.principal_key)
    finally:
        heartbeat_task.cancel()
        tracker.stop()
        manager.disconnect(conn)


async def _heartbeat(manager: ConnectionManager, conn: Connection) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    while True:
        await asyncio.sleep(interval)
        manager.send(conn, "pong", {})


class _Session:
    """Inbound frame handling for one socket."""

    def __init__(
        self,
        conn: Connection,
        principal: Principal,
        manager: ConnectionManager,
        uow_factory: UoWFactory,
    ) -> None:
        self._conn = conn
        self._principal = principal
        self._manager = manager
        self._uow_factory = uow_factory

    def _reply(self, event_type: str, data: dict[str, Any]) -> None:
        self._manager.send(self._conn, event_type, data)

    def _error(self, code: str, **extra: Any) -> None:
        frame = error_frame(code, **extra)
        self._reply(frame.type, frame.data)

    async def read_loop(self) -> None:
        while True:
            raw = await self._conn.ws.receive_text()
            try:
                msg = WsInbound.model_validate_json(raw)
            except Exception:
                self._error("invalid_payload")
                continue

            if msg.type == "ping":
                self._reply("pong", {})
            elif msg.type == "subscribe":
                await self._handle_subscribe(msg.data)
            elif msg.type == "unsubscribe":
                conversation_id = _conversation_id(msg.data)
                if conversation_id is not None:
                    self._manager.unsubscribe(self._conn, conversation_id)
            elif msg.type == "message.send":
                await self._handle_send(msg.data)
            elif msg.type == "mark_read":
                await self._handle_mark_read(msg.data)
            elif msg.type == "global.send":
                await self._handle_global_send(msg.data)
            else:
                self._error("unknown_type", type=msg.type)

    async def _handle_subscribe(self, data: dict[str, Any]) -> None:
        conversation_id = _conversation_id(data)
        if conversation_id is None:
            self._error("invalid_data", detail="conversation_id is required")
            return

        async with self._uow_factory() as uow:
            try:
                await conversation_service.get_conversation(
                    conversation_id, self._principal.user_id, uow,
                )
            except AppError as exc:
                self._error("forbidden", detail=exc.detail)
                return
            except Exception:
                logger.exception("Error checking access to conversation %s", conversation_id)
                self._error("subscribe_failed", conversation_id=str(conversation_id))
                return

        self._manager.subscribe(self._conn, conversation_id)
        self._reply("subscribed", {"conversation_id": str(conversation_id)})

    async def _handle_send(self, data: dict[str, Any]) -> None:
        conversation_id = _conversation_id(data)
        if conversation_id is None:
            self._error("invalid_data", detail="conversation_id is required")
            return

        async with self._uow_factory() as uow:
            try:
                msg = await message_service.send_message(
                    conversation_id,
                    self._principal.user_id,
                    str(data.get("content") or ""),
                    uow,
                )
            except ValidationError as exc:
                self._error("invalid_data", detail=exc.detail)
                return

        if msg is None:
            self._error("send_failed", conversation_id=str(conversation_id))
            return
        # Other subscribers get message.created through the change feed.
        self._reply("message.sent", MessageResponse.model_validate(msg).model_dump(mode="json"))

    async def _handle_mark_read(self, data: dict[str, Any]) -> None:
        conversation_id = _conversation_id(data)
        if conversation_id is None:
            return
        async with self._uow_factory() as uow:
            await message_service.mark_as_read(conversation_id, self._principal.user_id, uow)

    async def _handle_global_send(self, data: dict[str, Any]) -> None:
        async with self._uow_factory() as uow:
            try:
                msg = await global_chat_service.send_global_message(
                    self._principal.user_id, str(data.get("content") or ""), uow,
                )
            except ValidationError as exc:
                self._error("invalid_data", detail=exc.detail)
                return

        if msg is None:
            self._error("send_failed")
            return
        self._reply("global_message.sent", ChangeNotification.global_message_inserted(msg).data)


def _conversation_id(data: dict[str, Any]) -> UUID | None:
    try:
        return UUID(str(data["conversation_id"]))
    except (KeyError, ValueError):
        return None
