from __future__ import annotations

from typing import Protocol

from staunton_chat.application.dto.principal import Principal


class TokenVerifier(Protocol):
    """Checks an access token issued by the platform's auth provider.

    Raises on an expired, malformed or wrongly signed token. REST callers get
    401 and WebSocket callers are closed with code 4001.
    """

    async def verify(self, token: str) -> Principal: ...
