"""Typed service errors and their HTTP translation.

Services raise these instead of ``HTTPException`` so they stay usable outside
a request; ``register_exception_handlers`` maps them onto the JSON error body::

    {"error": {"code": "CONFLICT", "message": "Custom slug already exists"}}
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.enums import ErrorCode

__all__ = [
    "BadRequestError",
    "ConflictError",
    "InternalError",
    "NotFoundError",
    "ServiceError",
    "UnauthorizedError",
    "error_response",
    "register_exception_handlers",
]

logger = logging.getLogger("urlshortener")


class ServiceError(Exception):
    code: ErrorCode = ErrorCode.INTERNAL
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, details: Any = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class BadRequestError(ServiceError):
    code = ErrorCode.BAD_REQUEST
    default_message = "Bad request"


class UnauthorizedError(ServiceError):
    code = ErrorCode.UNAUTHORIZED
    default_message = "Authentication required"


class NotFoundError(ServiceError):
    code = ErrorCode.NOT_FOUND
    default_message = "Not found"


class ConflictError(ServiceError):
    code = ErrorCode.CONFLICT
    default_message = "Conflict"


class InternalError(ServiceError):
    code = ErrorCode.INTERNAL
    default_message = "Internal server error"


def error_response(
    code: ErrorCode, message: str, details: Any = None, status_code: int | None = None
) -> JSONResponse:
    body: dict[str, Any] = {"code": code.value, "message": message}
    if details is not None:
        body["details"] = jsonable_encoder(details)
    headers = {"WWW-Authenticate": "Bearer"} if code is ErrorCode.UNAUTHORIZED else None
    return JSONResponse(status_code=status_code or code.http_status, content={"error": body}, headers=headers)


async def _handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.code is ErrorCode.INTERNAL:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.code.value}: {exc.message}")
    return error_response(exc.code, exc.message, exc.details)


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
    message = errors[0]["msg"] if errors else "Invalid request"
    return error_response(ErrorCode.BAD_REQUEST, message, errors)


async def _handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        code = ErrorCode.NOT_FOUND
    elif exc.status_code == 401:
        code = ErrorCode.UNAUTHORIZED
    elif exc.status_code == 409:
        code = ErrorCode.CONFLICT
    elif exc.status_code < 500:
        code = ErrorCode.BAD_REQUEST
    else:
        code = ErrorCode.INTERNAL
    return error_response(code, str(exc.detail), status_code=exc.status_code)


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return error_response(ErrorCode.INTERNAL, InternalError.default_message)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, _handle_service_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, _handle_http_error)
    app.add_exception_handler(Exception, _handle_unexpected_error)
