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

UNAUTHENTICATED_MESSAGE = "Unauthorized Access!"


class AppError(Exception):
    """Base class for errors rendered straight into the response envelope.

    ``fields`` are merged into the top level of the error body next to
    ``code`` and ``message``.
    """

    status_code = 500
    code = "internal_server_error"
    default_message = "Server error"

    def __init__(
        self,
        message: str | None = None,
        *,
        details: dict | None = None,
        fields: dict | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.details = details or {}
        self.fields = fields or {}
        super().__init__(self.message)


class Unauthenticated(AppError):
    # Always the same message: callers learn nothing about why a credential failed.
    status_code = 401
    code = "unauthorized"
    default_message = UNAUTHENTICATED_MESSAGE

    def __init__(self) -> None:
        super().__init__(UNAUTHENTICATED_MESSAGE)


class InvalidAssertion(AppError):
    status_code = 401
    code = "invalid_assertion"
    default_message = "Invalid token"

    def __init__(self) -> None:
        super().__init__(self.default_message)


class Forbidden(AppError):
    status_code = 403
    code = "forbidden"
    default_message = "Forbidden"


class BadRequest(AppError):
    status_code = 400
    code = "bad_request"
    default_message = "Bad request"


class MissingLinkage(BadRequest):
    code = "missing_linkage"
    default_message = "No loanApplicationId in session metadata"


class PaymentNotCompleted(BadRequest):
    code = "payment_not_completed"
    default_message = "Payment not completed"


class NotFound(AppError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class Conflict(AppError):
    status_code = 409
    code = "conflict"
    default_message = "Conflict"


class ServerError(AppError):
    status_code = 500
    code = "internal_server_error"
    default_message = "Server error"


_STATUS_CODES = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
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
    details: Any = None,
    fields: dict | None = None,
) -> JSONResponse:
    """Render the error side of the ``{code, message, data, details}`` envelope.

    ``fields`` never replace the envelope keys.
    """
    content = {**(fields or {}), "code": code, "message": message, "data": None}
    content["details"] = _as_details(details)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


def _validation_message(errors: list[dict]) -> str:
    if not errors:
        return "Validation failed"
    first = errors[0]
    # "email", not "body.email"
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in {"body", "query", "path"})
    msg = first.get("msg") or "Validation failed"
    return f"{field}: {msg}" if field else str(msg)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "Request failed with %s on %s %s: %s",
            exc.code,
            request.method,
            request.url.path,
            exc.message,
            exc_info=exc.__cause__ is not None,
        )
    return error_response(exc.status_code, exc.code, exc.message, exc.details, exc.fields)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _STATUS_CODES.get(exc.status_code, "http_error")
    if isinstance(exc.detail, str):
        return error_response(exc.status_code, code, exc.detail)
    return error_response(exc.status_code, code, _phrase(exc.status_code), exc.detail)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = list(exc.errors())
    return error_response(422, "validation_error", _validation_message(errors), {"errors": errors})


async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    response = error_response(429, "rate_limited", _phrase(429), getattr(exc, "detail", None))
    headers = getattr(exc, "headers", None)
    if isinstance(headers, dict):
        response.headers.update(headers)
    return response


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(500, "internal_server_error", "Internal server error")


def register_exception_handlers(app) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
