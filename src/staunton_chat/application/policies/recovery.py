"""Store-boundary recovery helpers.

Service functions catch store failures, log them and return an empty result.
The session is rolled back so the unit of work stays usable afterwards.
"""
from __future__ import annotations

import logging

from staunton_chat.application.uow import UnitOfWork

logger = logging.getLogger(__name__)


async def rollback_quietly(uow: UnitOfWork) -> None:
    try:
        await uow.rollback()
    except Exception:
        logger.warning("Rollback failed after store error", exc_info=True)
