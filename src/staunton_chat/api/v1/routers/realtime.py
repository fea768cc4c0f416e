from __future__ import annotations

from fastapi import APIRouter

from staunton_chat.api.deps import CurrentPrincipal, OnlineTrackerDep, RealtimeBusDep
from staunton_chat.api.v1.schemas.realtime import RealtimeStatusResponse

router = APIRouter(prefix="/api/v1/realtime", tags=["realtime"])


@router.get("/status", response_model=RealtimeStatusResponse)
async def realtime_status(
    _principal: CurrentPrincipal,
    bus: RealtimeBusDep,
    online: OnlineTrackerDep,
) -> RealtimeStatusResponse:
    return RealtimeStatusResponse(
        status=bus.status,
        attempts=bus.attempts,
        online_users=sorted(online.online),
    )
