"""Mapping of domain errors onto HTTP responses"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from meeting_rooms.domain.exceptions import PolicyViolation, ReservationError, StorageFailure

logger = logging.getLogger(__name__)


async def reservation_error_handler(request: Request, exc: ReservationError) -> JSONResponse:
    if isinstance(exc, StorageFailure):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    content = {"error": exc.kind, "detail": exc.message}
    if isinstance(exc, PolicyViolation):
        content["violations"] = exc.violations
    return JSONResponse(status_code=exc.http_status, content=content)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ReservationError, reservation_error_handler)
