"""Cursor-based pagination helpers.

Cursor format: base64("<epoch-ms>|<message-id>")
"""
from __future__ import annotations

import base64
import binascii

from chat_realtime.application.exceptions import ValidationError


def encode_cursor(timestamp: int, message_id: str) -> str:
    raw = f"{timestamp}|{message_id}"
    cursor = base64.urlsafe_b64encode(raw.encode()).decode()
    return cursor.rstrip("=")


def decode_cursor(cursor: str) -> tuple[int, str]:
    # Restore base64 padding if it was stripped
    cursor += "=" * ((4 - len(cursor) % 4) % 4)
    try:
        raw = base64.urlsafe_b64decode(cursor.encode()).decode()
        ts_str, message_id = raw.split("|", 1)
        return int(ts_str), message_id
    except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
        raise ValidationError("Invalid cursor") from exc
