from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class LoanDeskError(Exception):
    """Base for workflow errors surfaced to callers."""

    status_code: int = 400
    code: str = "bad_request"

    def __init__(self, message: str, *, details: Any | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(LoanDeskError):
    status_code = 422
    code = "validation_error"


class Unauthorized(LoanDeskError):
    status_code = 401
    code = "unauthorized"


class Forbidden(LoanDeskError):
    status_code = 403
    code = "forbidden"


class NotFound(LoanDeskError):
    status_code = 404
    code = "not_found"


class InvalidState(LoanDeskError):
    """A workflow rule rejects the operation for the record's current status."""

    status_code = 409
    code = "invalid_state"


class PreconditionFailed(LoanDeskError):
    """A conditional write lost against the stored state; re-read and retry once."""

    status_code = 412
    code = "precondition_failed"


class StorageUnavailable(LoanDeskError):
    """Transient storage fault or timeout; safe to retry with backoff."""

    status_code = 503
    code = "storage_unavailable"


_HTTP_CODES = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    412: "precondition_failed",
    422: "validation_error",
    429: "rate_limited",
}


def _phrase(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Request failed"


def _as_details(details: Any) -> dict:
    if details is None:
        return {}
    if isinstance(details, dict):
        return details
    if isinstance(details, list):
        return {"errors": details}
    return {"detail": str(details)}


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: Any | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Failure body in the shared envelope: ``data`` is always null."""
    payload = {"code": code, "message": message, "data": None, "details": _as_details(details)}
    return JSONResponse(status_code=status_code, content=jsonable_encoder(payload), headers=headers)


async def loan_desk_exception_handler(request: Request, exc: LoanDeskError) -> JSONResponse:
    if isinstance(exc, StorageUnavailable):
        logger.warning("Storage unavailable on %s %s: %s", request.method, request.url.path, exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
    return error_response(exc.status_code, exc.code, exc.message, exc.details, headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = exc.detail
    message = detail if isinstance(detail, str) and detail else _phrase(exc.status_code)
    return error_response(
        exc.status_code,
        _HTTP_CODES.get(exc.status_code, "http_error"),
        message,
        None if isinstance(detail, str) else detail,
        getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    message = "Validation failed"
    if errors:
        first = errors[0]
        location = ".".join(
            str(part) for part in first.get("loc", ()) if part not in {"body", "query", "path"}
        )
        text = first.get("msg") or message
        message = f"{location}: {text}" if location else str(text)
    return error_response(422, "validation_error", message, {"errors": errors})


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(500, "internal_server_error", "Internal server error")


async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return error_response(
        429,
        "rate_limited",
        _phrase(429),
        {"limit": str(getattr(exc, "detail", ""))},
        getattr(exc, "headers", None),
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(LoanDeskError, loan_desk_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
