"""A single live WebSocket, addressable by id."""
from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any

from fastapi import WebSocket

from chat_realtime.infrastructure.ws.protocol import WsOutbound

logger = logging.getLogger(__name__)


class Connection:
    def __init__(self, websocket: WebSocket, connection_id: str | None = None) -> None:
        self.id = connection_id or uuid.uuid4().hex
        self._ws = websocket
        # Frames from concurrent tasks go out whole and in call order.
        self._send_lock = asyncio.Lock()

    async def accept(self) -> None:
        await self._ws.accept()

    async def send(self, event_type: str, data: Any) -> bool:
        """Send one frame. Return False if the socket is gone."""
        raw = WsOutbound(type=str(event_type), data=data).model_dump_json()
        async with self._send_lock:
            try:
                await self._ws.send_text(raw)
            except Exception:
                logger.debug("WS send failed on %s", self.id, exc_info=True)
                return False
        return True

    def __repr__(self) -> str:
        return f"Connection({self.id!r})"
