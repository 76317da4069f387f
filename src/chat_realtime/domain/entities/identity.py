from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Identity:
    """Verified caller identity, immutable for the life of a connection."""

    id: str
    username: str
    avatar: str | None = None
