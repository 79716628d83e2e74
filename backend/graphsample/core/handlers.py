from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from .errors import AuthError, DirectoryError, FilterError, NotFoundError, UpstreamError

logger = logging.getLogger(__name__)


def status_for(error: DirectoryError) -> int:
    if isinstance(error, AuthError):
        return status.HTTP_401_UNAUTHORIZED
    if isinstance(error, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(error, FilterError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(error, UpstreamError) and error.is_unavailable:
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_502_BAD_GATEWAY


async def directory_error_handler(request: Request, exc: DirectoryError) -> JSONResponse:
    status_code = status_for(exc)
    logger.error(
        "%s %s failed at %s (%s): %s",
        request.method,
        request.url.path,
        exc.stage.value,
        exc.code,
        exc.message,
    )
    return JSONResponse({"error": exc.to_dict()}, status_code=status_code)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DirectoryError, directory_error_handler)
