"""Domain exception -> HTTP response mapping, installed on the app once."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.exceptions import ConflictError, ForbiddenError, NotFoundError, TransientError

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[Exception], int], ...] = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
    (ConflictError, status.HTTP_409_CONFLICT),
    (TransientError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def _handler(status_code: int):
    async def handle(request: Request, exc: Exception) -> JSONResponse:
        if status_code >= 500:
            logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    return handle


def register_exception_handlers(app: FastAPI) -> None:
    for exc_type, status_code in _STATUS_BY_ERROR:
        app.add_exception_handler(exc_type, _handler(status_code))
