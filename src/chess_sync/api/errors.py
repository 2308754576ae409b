"""
Exception handlers: turn rejections into the move response shape.

Rejections are expected outcomes, so they are logged at INFO at most. Only infrastructure failures and
unexpected exceptions are logged as errors.
"""

import logging
from http import HTTPStatus
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from chess_sync.core.config import get_settings
from chess_sync.core.exceptions import (
    GameError,
    OutOfSyncError,
    ReasonCode,
    RepositoryError,
)

logger = logging.getLogger(__name__)

STATUS_FOR_REASON: dict[ReasonCode, HTTPStatus] = {
    ReasonCode.NOT_FOUND: HTTPStatus.NOT_FOUND,
    ReasonCode.GAME_NOT_ACTIVE: HTTPStatus.CONFLICT,
    ReasonCode.NOT_PARTICIPANT: HTTPStatus.FORBIDDEN,
    ReasonCode.NOT_YOUR_TURN: HTTPStatus.CONFLICT,
    ReasonCode.OUT_OF_SYNC: HTTPStatus.CONFLICT,
    ReasonCode.ILLEGAL_MOVE: HTTPStatus.UNPROCESSABLE_ENTITY,
    ReasonCode.GAME_FULL: HTTPStatus.CONFLICT,
    ReasonCode.ALREADY_PARTICIPANT: HTTPStatus.CONFLICT,
    ReasonCode.NOT_ABORTABLE: HTTPStatus.CONFLICT,
    ReasonCode.NO_DRAW_OFFER: HTTPStatus.CONFLICT,
    ReasonCode.INVALID_REQUEST: HTTPStatus.BAD_REQUEST,
}


def create_error_response(
    status_code: int,
    detail: str,
    reason: Optional[ReasonCode],
    **extra: Any,
) -> JSONResponse:
    """Same fields as an accepted move response, with `accepted` False."""
    return JSONResponse(
        status_code=status_code,
        content={
            "accepted": False,
            "reason": reason.value if reason else None,
            "detail": detail,
            **extra,
        },
    )


async def game_error_handler(request: Request, exc: GameError) -> JSONResponse:
    """Any rejection from the service layer"""
    logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.reason.value, exc)
    status_code = STATUS_FOR_REASON.get(exc.reason, HTTPStatus.BAD_REQUEST)
    return create_error_response(status_code, str(exc), exc.reason)


async def out_of_sync_handler(request: Request, exc: OutOfSyncError) -> JSONResponse:
    """Carries the authoritative state, so the client can resynchronize without another round trip."""
    logger.info(
        "%s %s out of sync, authoritative ply %d", request.method, request.url.path, exc.authoritative_ply
    )
    return create_error_response(
        HTTPStatus.CONFLICT,
        str(exc),
        exc.reason,
        authoritative_ply=exc.authoritative_ply,
        authoritative_fen=exc.authoritative_fen,
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed requests never reach the service"""
    errors = [
        {
            "field": ".".join(str(x) for x in error["loc"][1:]),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    logger.debug("Invalid request on %s: %s", request.url.path, errors)
    return create_error_response(
        HTTPStatus.UNPROCESSABLE_ENTITY,
        "Validation error",
        ReasonCode.INVALID_REQUEST,
        errors=errors,
    )


async def repository_error_handler(request: Request, exc: RepositoryError) -> JSONResponse:
    """Infrastructure failure: no reason code, the client should retry with backoff."""
    logger.error("Game store failure on %s: %s", request.url.path, exc)
    return create_error_response(HTTPStatus.SERVICE_UNAVAILABLE, str(exc), None)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unexpected error on %s: %s", request.url.path, exc, exc_info=True)
    detail = str(exc) if get_settings().debug else "An unexpected error occurred"
    return create_error_response(HTTPStatus.INTERNAL_SERVER_ERROR, detail, None)


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(OutOfSyncError, out_of_sync_handler)
    app.add_exception_handler(GameError, game_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(RepositoryError, repository_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)
