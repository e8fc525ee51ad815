from __future__ import annotations

import json
from http import HTTPStatus
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

_SUCCESS_CODES = {200: "ok", 201: "created", 202: "accepted"}
_BODY_HEADERS = {b"content-length", b"content-type"}


def success_envelope(data: Any, status_code: int = 200) -> dict[str, Any]:
    try:
        message = HTTPStatus(status_code).phrase
    except ValueError:
        message = "Success"
    return {
        "code": _SUCCESS_CODES.get(status_code, "ok"),
        "message": message,
        "data": data,
        "details": {},
    }


def _already_enveloped(payload: Any) -> bool:
    return (
        isinstance(payload, dict)
        and {"code", "message"} <= payload.keys()
        and ("data" in payload or "details" in payload)
    )


def _rebuild(source: Response, content: dict[str, Any], status_code: int) -> JSONResponse:
    """JSON response carrying every non-body header of ``source``.

    Raw headers are copied so repeated Set-Cookie headers survive.
    """
    rebuilt = JSONResponse(status_code=status_code, content=content)
    rebuilt.raw_headers.extend(
        (key, value) for key, value in source.headers.raw if key.lower() not in _BODY_HEADERS
    )
    return rebuilt


class ResponseEnvelopeMiddleware(BaseHTTPMiddleware):
    """Wrap 2xx JSON bodies in ``{code, message, data, details}``."""

    async def dispatch(self, request, call_next) -> Response:
        response = await call_next(request)
        if not 200 <= response.status_code < 300:
            return response

        # 204 has no body to wrap; clients still get a uniform envelope
        if response.status_code == 204:
            return _rebuild(response, success_envelope(None), 200)

        if not response.headers.get("content-type", "").startswith("application/json"):
            return response

        body = b"".join([chunk async for chunk in response.body_iterator])
        try:
            payload = json.loads(body) if body else None
        except ValueError:
            return Response(
                content=body,
                status_code=response.status_code,
                headers=dict(response.headers),
                media_type=response.media_type,
            )

        if not _already_enveloped(payload):
            payload = success_envelope(payload, response.status_code)
        return _rebuild(response, payload, response.status_code)


def register_response_envelope(app) -> None:
    app.add_middleware(ResponseEnvelopeMiddleware)
