from __future__ import annotations

import logging
from uuid import UUID

from staunton_chat.application.policies.recovery import rollback_quietly
from staunton_chat.application.uow import UnitOfWork
from staunton_chat.domain.entities.profile import Profile

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2


async def search_profiles(
    query: str,
    uow: UnitOfWork,
    *,
    limit: int = 10,
    exclude_user_id: UUID | None = None,
) -> list[Profile]:
    """Counterparty lookup for starting a conversation. Short queries return nothing.

    `exclude_user_id` (normally the caller) is filtered out before the limit applies.
    """
    term = (query or "").strip()
    if len(term) < MIN_QUERY_LENGTH:
        return []
    try:
        return await uow.profiles.search(term, limit=limit, exclude=exclude_user_id)
    except Exception:
        logger.exception("Error searching profiles for %r", term)
        await rollback_quietly(uow)
        return []
