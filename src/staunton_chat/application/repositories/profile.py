from __future__ import annotations

from typing import Protocol
from uuid import UUID

from staunton_chat.domain.entities.profile import Profile


class ProfileReader(Protocol):
    async def get_by_id(self, user_id: UUID) -> Profile | None: ...

    async def search(
        self, query: str, *, limit: int = 20, exclude: UUID | None = None,
    ) -> list[Profile]:
        """Case-insensitive substring match on full name or company name, minus `exclude`."""
        ...
