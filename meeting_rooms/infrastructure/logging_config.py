"""Logging setup shared by the API and the reservation core."""
from __future__ import annotations

import logging
from time import time
from typing import Optional

from fastapi import FastAPI, Request

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    root.setLevel(level.upper())
    if any(getattr(h, "_meeting_rooms", False) for h in root.handlers):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    handler._meeting_rooms = True  # type: ignore[attr-defined]
    root.addHandler(handler)


def add_request_logging_middleware(app: FastAPI) -> None:
    logger = logging.getLogger("meeting_rooms.http")

    @app.middleware("http")
    async def request_logger(request: Request, call_next):  # type: ignore[override]
        start = time()
        response = await call_next(request)
        duration_ms = (time() - start) * 1000
        client_ip: Optional[str] = None
        if request.client:
            client_ip = request.client.host
        logger.info(
            "%s %s | status=%s | client=%s | duration=%.2fms",
            request.method,
            request.url.path,
            response.status_code,
            client_ip or "unknown",
            duration_ms,
        )
        return response
