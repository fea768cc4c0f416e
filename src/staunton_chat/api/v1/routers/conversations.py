from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from staunton_chat.api.deps import CurrentPrincipal, UoWDep
from staunton_chat.api.v1.schemas.conversation import (
    ConversationResponse,
    ConversationSummaryResponse,
    CreateConversationRequest,
    CreateConversationResponse,
    UnreadCountResponse,
)
from staunton_chat.services import conversation_service

router = APIRouter(prefix="/api/v1/conversations", tags=["conversations"])


@router.get("", response_model=list[ConversationSummaryResponse])
async def list_conversations(
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> list[ConversationSummaryResponse]:
    summaries = await conversation_service.get_conversations(principal.user_id, uow)
    return [ConversationSummaryResponse.model_validate(s, from_attributes=True) for s in summaries]


@router.post("", response_model=CreateConversationResponse, status_code=201)
async def create_conversation(
    body: CreateConversationRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> CreateConversationResponse:
    conversation_id = await conversation_service.get_or_create_conversation(
        principal.user_id, body.other_user_id, uow,
    )
    if conversation_id is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not establish conversation",
        )
    return CreateConversationResponse(id=conversation_id)


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> UnreadCountResponse:
    count = await conversation_service.get_total_unread_count(principal.user_id, uow)
    return UnreadCountResponse(unread_count=count)


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: UUID,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ConversationResponse:
    conv = await conversation_service.get_conversation(conversation_id, principal.user_id, uow)
    return ConversationResponse.model_validate(conv, from_attributes=True)
