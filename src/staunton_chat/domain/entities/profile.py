from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Profile:
    id: UUID
    email: str
    full_name: str | None
    company_name: str | None
    role: list[str] = field(default_factory=list)
    verification_status: str = "unverified"
    avatar_url: str | None = None
    bio: str | None = None
    location: str | None = None
    is_admin: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class SenderProfile:
    """Public projection of a profile joined onto global chat messages."""

    id: UUID
    full_name: str | None
    company_name: str | None
    avatar_url: str | None
    role: list[str] = field(default_factory=list)
    verification_status: str = "unverified"
