from __future__ import annotations

import jwt

from chat_realtime.application.exceptions import UnauthenticatedError
from chat_realtime.domain.entities.identity import Identity
from chat_realtime.infrastructure.auth.claims import identity_from_claims


class HS256Verifier:
    """Verify JWTs signed with a shared HS256 secret."""

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._algorithm = algorithm

    async def verify(self, token: str) -> Identity:
        if not token:
            raise UnauthenticatedError("Missing token")
        try:
            claims = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.PyJWTError as exc:
            raise UnauthenticatedError(f"Invalid token: {exc}") from exc
        return identity_from_claims(claims)
