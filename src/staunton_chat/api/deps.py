"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated, AsyncIterator

from fastapi import Depends, HTTPException, Request, WebSocket, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from staunton_chat.application.dto.principal import Principal
from staunton_chat.application.ports.auth import TokenVerifier
from staunton_chat.application.uow import UnitOfWork, UoWFactory
from staunton_chat.config import settings
from staunton_chat.infrastructure.auth.hs256_verifier import HS256Verifier
from staunton_chat.infrastructure.db.session import AsyncSessionLocal
from staunton_chat.infrastructure.db.uow import SqlAlchemyUoW
from staunton_chat.infrastructure.ws.manager import ConnectionManager
from staunton_chat.realtime.bus import RealtimeBus
from staunton_chat.realtime.change_feed import ChangeFeed
from staunton_chat.services.presence_service import OnlineUsersTracker

_bearer_scheme = HTTPBearer()


async def get_uow() -> AsyncIterator[UnitOfWork]:
    async with AsyncSessionLocal() as session:
        uow = SqlAlchemyUoW(session)
        try:
            yield uow
        finally:
            await session.close()


UoWDep = Annotated[UnitOfWork, Depends(get_uow)]


_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = HS256Verifier(
            settings.JWT_SECRET,
            settings.JWT_ALGORITHM,
            settings.JWT_AUDIENCE,
        )
    return _verifier


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(_bearer_scheme)],
) -> Principal:
    verifier = get_verifier()
    try:
        return await verifier.verify(credentials.credentials)
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


def get_realtime_bus(request: Request) -> RealtimeBus:
    return request.app.state.realtime_bus


def get_online_tracker(request: Request) -> OnlineUsersTracker:
    return request.app.state.online_users


RealtimeBusDep = Annotated[RealtimeBus, Depends(get_realtime_bus)]
OnlineTrackerDep = Annotated[OnlineUsersTracker, Depends(get_online_tracker)]


def ws_change_feed(websocket: WebSocket) -> ChangeFeed:
    return websocket.app.state.change_feed


def ws_manager(websocket: WebSocket) -> ConnectionManager:
    return websocket.app.state.ws_manager


def ws_uow_factory(websocket: WebSocket) -> UoWFactory:
    return websocket.app.state.uow_factory


def ws_realtime_bus(websocket: WebSocket) -> RealtimeBus:
    return websocket.app.state.realtime_bus
