import logging
import math
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError

from app.logging_setup import current_request_id

logger = logging.getLogger(__name__)

VALIDATION_ERROR = "VALIDATION_ERROR"
NOT_FOUND = "NOT_FOUND"
UNAUTHORIZED = "UNAUTHORIZED"
FORBIDDEN = "FORBIDDEN"
CONFLICT = "CONFLICT"
RATE_LIMITED = "RATE_LIMITED"
INTERNAL_ERROR = "INTERNAL_ERROR"
BAD_REQUEST = "BAD_REQUEST"
SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"

_CODES_BY_STATUS = {
    400: BAD_REQUEST,
    401: UNAUTHORIZED,
    403: FORBIDDEN,
    404: NOT_FOUND,
    409: CONFLICT,
    422: VALIDATION_ERROR,
    429: RATE_LIMITED,
    503: SERVICE_UNAVAILABLE,
}


class ApiError(Exception):
    """An error with a stable machine-readable code and an HTTP status."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Any = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        self.headers = headers


def not_found(resource: str) -> ApiError:
    return ApiError(NOT_FOUND, f"{resource} not found", 404)


def validation_error(message: str, details: Any = None) -> ApiError:
    return ApiError(VALIDATION_ERROR, message, 400, details)


def bad_request(message: str) -> ApiError:
    return ApiError(BAD_REQUEST, message, 400)


def conflict(message: str) -> ApiError:
    return ApiError(CONFLICT, message, 409)


def retry_after_seconds(request: Request) -> int:
    """Seconds until the limit that rejected this request opens again."""
    limiter = getattr(request.app.state, "limiter", None)
    current = getattr(request.state, "view_rate_limit", None)
    if limiter is None or current is None:
        return 1
    item, args = current
    reset_at = limiter.limiter.get_window_stats(item, *args)[0]
    return max(1, math.ceil(reset_at - time.time()))


def error_body(code: str, message: str, details: Any = None) -> dict[str, Any]:
    error: dict[str, Any] = {
        "code": code,
        "message": message,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if details is not None:
        error["details"] = details
    request_id = current_request_id()
    if request_id:
        error["request_id"] = request_id
    return {"success": False, "error": error}


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        if exc.status_code >= 500:
            logger.error("API error on %s %s: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=jsonable_encoder(error_body(exc.code, exc.message, exc.details)),
            headers=exc.headers,
        )

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        retry_after = retry_after_seconds(request)
        logger.warning("Rate limit hit on %s %s: %s", request.method, request.url.path, exc.detail)
        return JSONResponse(
            status_code=429,
            content=error_body(RATE_LIMITED, str(exc.detail), {"retry_after": retry_after}),
            headers={"Retry-After": str(retry_after)},
        )

    @app.exception_handler(HTTPException)
    async def http_error_handler(request: Request, exc: HTTPException):
        code = _CODES_BY_STATUS.get(exc.status_code, INTERNAL_ERROR)
        body = error_body(code, str(exc.detail))
        # Keep FastAPI's "detail" key for OAuth2 clients
        body["detail"] = exc.detail
        return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content=jsonable_encoder(error_body(VALIDATION_ERROR, "Validation failed", exc.errors())),
        )

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
        return JSONResponse(status_code=409, content=error_body(CONFLICT, "Resource already exists"))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content=error_body(INTERNAL_ERROR, "Internal server error"))
