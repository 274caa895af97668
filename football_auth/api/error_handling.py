"""Translate AuthError kinds into HTTP responses at the request boundary."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from football_auth.core.errors import ERROR_STATUS, AuthError, ErrorKind
from football_auth.schemas.auth import ErrorResponse

logger = logging.getLogger(__name__)

# Kinds reported to the client under a generic code
_PUBLIC_KIND = {
    ErrorKind.STORE_UNAVAILABLE: "authentication_failed",
    ErrorKind.CONFIG: "server_error",
}


def error_response(exc: AuthError) -> JSONResponse:
    """Build the JSON response for an AuthError."""
    status_code = ERROR_STATUS[exc.kind]
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            detail=exc.public_message,
            error=_PUBLIC_KIND.get(exc.kind, exc.kind.value),
        ).model_dump(),
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the AuthError handler on ``app``."""

    @app.exception_handler(AuthError)
    async def handle_auth_error(request: Request, exc: AuthError) -> JSONResponse:
        status_code = ERROR_STATUS[exc.kind]
        if status_code >= 500 or exc.kind is ErrorKind.STORE_UNAVAILABLE:
            logger.error(f"{exc.kind.value} on {request.method} {request.url.path}: {exc.message}")
        else:
            logger.debug(f"{exc.kind.value} on {request.method} {request.url.path}")
        return error_response(exc)
