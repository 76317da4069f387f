"""Entrypoint: python -m chat_realtime"""
from __future__ import annotations

import logging

import uvicorn

from chat_realtime.api.middleware.correlation_id import CorrelationIdFilter
from chat_realtime.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s: %(message)s"


def main() -> None:
    handler = logging.StreamHandler()
    handler.addFilter(CorrelationIdFilter())
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format=LOG_FORMAT,
        handlers=[handler],
    )
    uvicorn.run(
        "chat_realtime.app:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL,
    )


if __name__ == "__main__":
    main()
