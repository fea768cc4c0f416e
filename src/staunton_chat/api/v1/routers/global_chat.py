from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, Response, status

from staunton_chat.api.deps import CurrentPrincipal, UoWDep
from staunton_chat.api.v1.schemas.global_chat import (
    GlobalChatStatsResponse,
    GlobalMessageResponse,
    OnlineCountResponse,
    SendGlobalMessageRequest,
)
from staunton_chat.application.exceptions import NotFoundError
from staunton_chat.config import settings
from staunton_chat.services import global_chat_service

router = APIRouter(prefix="/api/v1/global-chat", tags=["global-chat"])


@router.get("/messages", response_model=list[GlobalMessageResponse])
async def list_global_messages(
    _principal: CurrentPrincipal,
    uow: UoWDep,
    before: datetime | None = Query(None),
    limit: int | None = Query(None, ge=1, le=500),
) -> list[GlobalMessageResponse]:
    if before is None:
        messages = await global_chat_service.get_global_messages(
            uow, limit=limit or settings.GLOBAL_MESSAGES_PAGE_SIZE,
        )
    else:
        messages = await global_chat_service.get_older_global_messages(
            before, uow, limit=limit or settings.GLOBAL_OLDER_PAGE_SIZE,
        )
    return [GlobalMessageResponse.model_validate(m, from_attributes=True) for m in messages]


@router.post("/messages", response_model=GlobalMessageResponse, status_code=201)
async def send_global_message(
    body: SendGlobalMessageRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> GlobalMessageResponse:
    msg = await global_chat_service.send_global_message(principal.user_id, body.content, uow)
    if msg is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Message could not be sent",
        )
    return GlobalMessageResponse.model_validate(msg, from_attributes=True)


@router.delete("/messages/{message_id}", status_code=204)
async def delete_global_message(
    message_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> Response:
    deleted = await global_chat_service.delete_global_message(message_id, principal.user_id, uow)
    if not deleted:
        raise NotFoundError("Message not found")
    return Response(status_code=204)


@router.get("/online-count", response_model=OnlineCountResponse)
async def online_count(
    _principal: CurrentPrincipal,
    uow: UoWDep,
) -> OnlineCountResponse:
    return OnlineCountResponse(online_count=await global_chat_service.get_online_users_count(uow))


@router.get("/stats", response_model=GlobalChatStatsResponse)
async def stats(
    _principal: CurrentPrincipal,
    uow: UoWDep,
) -> GlobalChatStatsResponse:
    result = await global_chat_service.get_global_chat_stats(uow)
    return GlobalChatStatsResponse.model_validate(result, from_attributes=True)
