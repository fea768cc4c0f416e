from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from staunton_chat.api.deps import CurrentPrincipal, UoWDep
from staunton_chat.api.v1.schemas.message import (
    MarkReadResponse,
    MessageResponse,
    SendMessageRequest,
)
from staunton_chat.config import settings
from staunton_chat.services import conversation_service, message_service

router = APIRouter(prefix="/api/v1/conversations", tags=["messages"])


@router.get("/{conversation_id}/messages", response_model=list[MessageResponse])
async def list_messages(
    conversation_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
    limit: int = Query(settings.MESSAGES_PAGE_SIZE, ge=1, le=200),
) -> list[MessageResponse]:
    await conversation_service.get_conversation(conversation_id, principal.user_id, uow)
    messages = await message_service.get_messages(conversation_id, uow, limit=limit)
    return [MessageResponse.model_validate(m, from_attributes=True) for m in messages]


@router.post("/{conversation_id}/messages", response_model=MessageResponse, status_code=201)
async def send_message(
    conversation_id: UUID,
    body: SendMessageRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> MessageResponse:
    await conversation_service.get_conversation(conversation_id, principal.user_id, uow)
    msg = await message_service.send_message(
        conversation_id, principal.user_id, body.content, uow,
    )
    if msg is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Message could not be sent",
        )
    return MessageResponse.model_validate(msg, from_attributes=True)


@router.post("/{conversation_id}/read", response_model=MarkReadResponse)
async def mark_read(
    conversation_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> MarkReadResponse:
    await conversation_service.get_conversation(conversation_id, principal.user_id, uow)
    updated = await message_service.mark_as_read(conversation_id, principal.user_id, uow)
    return MarkReadResponse(updated=updated)
