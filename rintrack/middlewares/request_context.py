from uuid import uuid4

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from rintrack.core import context

MAX_REQUEST_ID_LENGTH = 128


def resolve_request_id(scope: Scope) -> str:
    """Caller-supplied X-Request-ID (truncated) or a fresh uuid4."""
    supplied = Headers(scope=scope).get("x-request-id", "")
    return supplied[:MAX_REQUEST_ID_LENGTH] or str(uuid4())


class RequestContextMiddleware:
    """Bind a request id to the logging context and echo it back.

    The verified subject is filled in later by the identity dependency; both
    are reset here so nothing leaks between requests sharing a worker.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = resolve_request_id(scope)
        context.clear_context()
        context.set_request_id(request_id)

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                message["headers"] = [
                    *message.get("headers", []),
                    (b"x-request-id", request_id.encode("latin-1")),
                ]
            await send(message)

        await self.app(scope, receive, send_with_request_id)
