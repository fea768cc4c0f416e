from __future__ import annotations

from fastapi import APIRouter, Query

from staunton_chat.api.deps import CurrentPrincipal, UoWDep
from staunton_chat.api.v1.schemas.conversation import ProfileResponse
from staunton_chat.services import profile_service

router = APIRouter(prefix="/api/v1/profiles", tags=["profiles"])


@router.get("/search", response_model=list[ProfileResponse])
async def search_profiles(
    principal: CurrentPrincipal,
    uow: UoWDep,
    q: str = Query("", max_length=100),
    limit: int = Query(10, ge=1, le=50),
) -> list[ProfileResponse]:
    profiles = await profile_service.search_profiles(
        q, uow, limit=limit, exclude_user_id=principal.user_id,
    )
    return [ProfileResponse.model_validate(p, from_attributes=True) for p in profiles]
