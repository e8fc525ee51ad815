from starlette.types import ASGIApp, Message, Receive, Scope, Send

_BASE_HEADERS: tuple[tuple[bytes, bytes], ...] = (
    (b"x-content-type-options", b"nosniff"),
    (b"x-frame-options", b"DENY"),
    (b"referrer-policy", b"no-referrer"),
    (b"cross-origin-opener-policy", b"same-origin"),
)
_HSTS = (b"strict-transport-security", b"max-age=63072000; includeSubDomains")
_NO_STORE = (b"cache-control", b"no-store")


class SecurityHeadersMiddleware:
    """Default security headers; auth and payment responses are never cached."""

    def __init__(
        self,
        app: ASGIApp,
        enable_hsts: bool = False,
        no_store_prefixes: tuple[str, ...] = (),
    ) -> None:
        self.app = app
        self.enable_hsts = enable_hsts
        self.no_store_prefixes = no_store_prefixes

    def _extra_headers(self, path: str) -> list[tuple[bytes, bytes]]:
        extra = list(_BASE_HEADERS)
        if self.enable_hsts:
            extra.append(_HSTS)
        if any(path.startswith(prefix) for prefix in self.no_store_prefixes):
            extra.append(_NO_STORE)
        return extra

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        extra = self._extra_headers(scope.get("path", ""))

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                existing = {key.lower() for key, _ in headers}
                headers.extend((key, value) for key, value in extra if key not in existing)
                message["headers"] = headers
            await send(message)

        await self.app(scope, receive, send_with_headers)
