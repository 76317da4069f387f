from __future__ import annotations

from typing import NewType

ConversationId = NewType("ConversationId", str)
MessageId = NewType("MessageId", str)
IdentityId = NewType("IdentityId", str)

GLOBAL_CONVERSATION_ID = "global"
PRIVATE_SEPARATOR = "_"


def private_conversation_id(a: str, b: str) -> str:
    """Canonical id of the private conversation between two identities.

    Either party computes the same value: ``min(a, b) + "_" + max(a, b)``.
    """
    if not a or not b:
        raise ValueError("Both identity ids are required")
    if PRIVATE_SEPARATOR in a or PRIVATE_SEPARATOR in b:
        raise ValueError(f"Identity ids must not contain {PRIVATE_SEPARATOR!r}")
    low, high = sorted((a, b))
    return f"{low}{PRIVATE_SEPARATOR}{high}"


def split_private_id(conversation_id: str) -> tuple[str, str] | None:
    """Return the two peers of a canonical private id, or None.

    Only ids made of exactly two non-empty parts in canonical order are
    recognized, so opaque ids that merely contain the separator are not
    mistaken for private pairs.
    """
    parts = conversation_id.split(PRIVATE_SEPARATOR)
    if len(parts) != 2 or not all(parts):
        return None
    low, high = parts
    if low > high:
        return None
    return low, high
