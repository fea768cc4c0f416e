from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator
from uuid import UUID

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from staunton_chat.api.middleware.correlation_id import CorrelationIdMiddleware
from staunton_chat.api.middleware.metrics import RequestTimingMiddleware
from staunton_chat.api.v1.routers import (
    conversations,
    global_chat,
    health,
    messages,
    profiles,
    realtime,
    ws,
)
from staunton_chat.api.v1.schemas.global_chat import GlobalMessageResponse
from staunton_chat.application.dto.events import ChangeNotification
from staunton_chat.application.exceptions import (
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from staunton_chat.application.uow import UoWFactory
from staunton_chat.config import settings
from staunton_chat.domain.entities.global_message import GlobalMessage
from staunton_chat.domain.events.realtime_event import RealtimeEvent
from staunton_chat.domain.value_objects.enums import (
    ChangeOperation,
    ChangeTable,
    ConnectionStatus,
)
from staunton_chat.infrastructure.bus.redis_pubsub import RedisEventSource, RedisPubSubSubscriber
from staunton_chat.infrastructure.db.session import uow_scope
from staunton_chat.infrastructure.ws.manager import ConnectionManager
from staunton_chat.realtime.backoff import BackoffPolicy
from staunton_chat.realtime.bus import RealtimeBus
from staunton_chat.realtime.change_feed import ChangeFeed
from staunton_chat.realtime.sources import EventSource, SimulatedEventSource
from staunton_chat.services.global_chat_service import subscribe_to_global_chat
from staunton_chat.services.presence_service import OnlineUsersTracker

logger = logging.getLogger(__name__)


def _backoff() -> BackoffPolicy:
    return BackoffPolicy(
        base_delay=settings.RECONNECT_BASE_DELAY,
        multiplier=settings.RECONNECT_MULTIPLIER,
        max_delay=settings.RECONNECT_MAX_DELAY,
        max_retries=settings.RECONNECT_MAX_RETRIES,
    )


def _event_source(redis: aioredis.Redis) -> EventSource:
    if settings.REALTIME_SOURCE == "simulated":
        return SimulatedEventSource()
    return RedisEventSource(redis, settings.REALTIME_CHANNEL)


def _wire_fanout(
    feed: ChangeFeed,
    bus: RealtimeBus,
    manager: ConnectionManager,
    uow_factory: UoWFactory,
) -> None:
    """Route change notifications and realtime events to connected sockets."""

    async def _on_message_change(notification: ChangeNotification) -> None:
        conversation_id = UUID(notification.data["conversation_id"])
        if notification.operation == ChangeOperation.INSERT:
            manager.broadcast_to_conversation(conversation_id, "message.created", notification.data)
        else:
            manager.broadcast_to_conversation(conversation_id, "messages.read", notification.data)

    async def _on_global_message(message: GlobalMessage) -> None:
        payload = GlobalMessageResponse.model_validate(message, from_attributes=True)
        manager.broadcast_all("global_message.created", payload.model_dump(mode="json"))

    def _on_realtime_event(event: RealtimeEvent) -> None:
        manager.broadcast_all("realtime.event", event.to_dict())

    def _on_status(status: ConnectionStatus) -> None:
        manager.broadcast_all("realtime.status", {"status": status})

    feed.subscribe(ChangeTable.MESSAGES, _on_message_change)
    subscribe_to_global_chat(feed, uow_factory, _on_global_message)
    bus.subscribe_all(_on_realtime_event)
    bus.on_status_change(_on_status)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    app.state.redis = aioredis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
    )
    logger.info("Redis connection pool created")

    feed = ChangeFeed()
    bus = RealtimeBus(_event_source(app.state.redis), _backoff())
    manager = ConnectionManager()
    online_users = OnlineUsersTracker(bus)
    online_users.start()
    _wire_fanout(feed, bus, manager, app.state.uow_factory)

    subscriber = RedisPubSubSubscriber(
        app.state.redis,
        settings.CHANGES_CHANNEL,
        feed.on_pubsub_event,
        backoff=_backoff(),
    )
    await subscriber.start()

    app.state.change_feed = feed
    app.state.realtime_bus = bus
    app.state.ws_manager = manager
    app.state.online_users = online_users
    app.state.pubsub_subscriber = subscriber

    if settings.REALTIME_AUTOCONNECT:
        await bus.connect()

    yield

    await bus.disconnect()
    online_users.stop()
    await subscriber.stop()
    await manager.close_all()
    await app.state.redis.aclose()
    logger.info("Redis connection pool closed")


def create_app(uow_factory: UoWFactory | None = None) -> FastAPI:
    app = FastAPI(
        title="Staunton Trade Chat",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.uow_factory = uow_factory or uow_scope

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(conversations.router)
    app.include_router(messages.router)
    app.include_router(global_chat.router)
    app.include_router(profiles.router)
    app.include_router(realtime.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.detail})

    @app.exception_handler(ForbiddenError)
    async def _forbidden(_req: Request, exc: ForbiddenError) -> JSONResponse:
        return JSONResponse(status_code=403, content={"detail": exc.detail})

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.detail})

    @app.exception_handler(SQLAlchemyError)
    async def _storage_error(req: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error("Storage error on %s %s", req.method, req.url.path, exc_info=exc)
        return JSONResponse(status_code=503, content={"detail": "Storage unavailable"})
