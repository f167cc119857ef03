"""FastAPI exception handlers mapping the error hierarchy to HTTP responses.

Response body:
    {"status": 404, "message": "Dashboard '...' not found", "errorCode": "NOT_FOUND"}

Messages are sanitized before they reach the client; the original error
is logged.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from .error_sanitizer import sanitize_error_message
from .exceptions import DatabaseError, EdgeboardError

logger = logging.getLogger(__name__)

_HTTP_ERROR_CODES = {
    400: "VALIDATION_ERROR",
    401: "AUTHENTICATION_ERROR",
    403: "PERMISSION_DENIED",
    404: "NOT_FOUND",
    409: "CONFLICT",
}


def error_response(status_code: int, message: str, code: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": status_code, "message": message, "errorCode": code},
        headers=headers,
    )


async def edgeboard_error_handler(request: Request, exc: EdgeboardError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}", exc_info=exc)
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return error_response(
        exc.status_code,
        sanitize_error_message(exc.message),
        exc.code,
    )


async def database_error_handler(request: Request, exc: DatabaseError) -> JSONResponse:
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return error_response(
        exc.status_code,
        sanitize_error_message(exc.message, "Database error"),
        exc.code,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Authentication/authorization failures and other HTTPExceptions."""
    return error_response(
        exc.status_code,
        str(exc.detail),
        _HTTP_ERROR_CODES.get(exc.status_code, f"HTTP_{exc.status_code}"),
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed query parameters or bodies are reported as 400."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"Invalid parameter '{location}': {first.get('msg', 'invalid value')}"
    else:
        message = "Invalid request"
    return error_response(400, sanitize_error_message(message), "VALIDATION_ERROR")


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return error_response(500, "Internal server error", "INTERNAL_ERROR")


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers on an application."""
    app.add_exception_handler(DatabaseError, database_error_handler)
    app.add_exception_handler(EdgeboardError, edgeboard_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
