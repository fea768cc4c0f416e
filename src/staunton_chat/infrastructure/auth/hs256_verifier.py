from __future__ import annotations

from uuid import UUID

import jwt

from staunton_chat.application.dto.principal import Principal


class HS256Verifier:
    """Verify access tokens signed with the shared project secret.

    Roles are read from ``app_metadata.roles`` when present, else ``roles``.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        audience: str | None = None,
    ) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._audience = audience

    async def verify(self, token: str) -> Principal:
        payload = jwt.decode(
            token,
            self._secret,
            algorithms=[self._algorithm],
            audience=self._audience,
            options={"verify_aud": self._audience is not None},
        )
        app_metadata = payload.get("app_metadata") or {}
        roles = app_metadata.get("roles", payload.get("roles", []))
        return Principal(
            user_id=UUID(payload["sub"]),
            roles=list(roles),
        )
