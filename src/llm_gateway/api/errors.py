"""Error envelopes and exception handlers for the HTTP surface."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from llm_gateway.domain.exceptions import GatewayError


logger = logging.getLogger(__name__)


def error_response(
    status_code: int,
    error_type: str,
    message: str,
    request_id: Optional[str] = None,
) -> JSONResponse:
    error = {"type": error_type, "message": message}
    if request_id:
        error["request_id"] = request_id
    return JSONResponse(status_code=status_code, content={"error": error})


def request_id_of(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


async def _gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    level = logging.WARNING if exc.status_code < 500 else logging.ERROR
    logger.log(
        level,
        "request_failed",
        extra={
            "request_id": request_id_of(request),
            "error_type": exc.error_type,
            "error": str(exc),
        },
    )
    return error_response(
        exc.status_code, exc.error_type, exc.message, request_id_of(request)
    )


async def _validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
        for error in exc.errors()
    )
    return error_response(
        400, "invalid_request_error", details or "Invalid request", request_id_of(request)
    )


def _rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return error_response(
        429,
        "rate_limit_error",
        f"Too many requests, please try again later ({exc.detail})",
        request_id_of(request),
    )


async def _http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    if exc.status_code == 404:
        return error_response(
            404,
            "not_found",
            f"Endpoint {request.url.path} not found",
            request_id_of(request),
        )
    error_type = "invalid_request_error" if exc.status_code < 500 else "api_error"
    return error_response(
        exc.status_code, error_type, str(exc.detail), request_id_of(request)
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "unhandled_error", extra={"request_id": request_id_of(request)}
    )
    return error_response(
        500, "internal_server_error", "Internal server error", request_id_of(request)
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GatewayError, _gateway_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
