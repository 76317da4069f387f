from __future__ import annotations

from typing import Any

from chat_realtime.application.exceptions import UnauthenticatedError
from chat_realtime.domain.entities.identity import Identity


def identity_from_claims(claims: dict[str, Any]) -> Identity:
    """Build an Identity from decoded token claims (``sub`` or ``id``, ``username``, ``avatar``)."""
    subject = claims.get("sub") or claims.get("id")
    if not subject:
        raise UnauthenticatedError("Token has no subject")
    subject = str(subject)
    return Identity(
        id=subject,
        username=str(claims.get("username") or subject),
        avatar=claims.get("avatar"),
    )
