from starlette.types import ASGIApp, Receive, Scope, Send


def client_from_forwarded(header: str, proxies_count: int) -> str | None:
    """Pick the client address from an X-Forwarded-For chain.

    With N trusted proxies appended at the end, the client sits at index -(N+1).
    Returns None when the chain is too short to contain it.
    """
    hops = [hop.strip() for hop in header.split(",") if hop.strip()]
    if len(hops) <= proxies_count:
        return None
    return hops[-(proxies_count + 1)]


class TrustedProxiesMiddleware:
    """Rewrites the ASGI client address so rate limits key on the real caller."""

    def __init__(self, app: ASGIApp, proxies_count: int = 1) -> None:
        self.app = app
        self.proxies_count = proxies_count

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and self.proxies_count > 0:
            forwarded = b""
            for key, value in scope.get("headers", []):
                if key == b"x-forwarded-for":
                    forwarded = value
                    break
            client = client_from_forwarded(forwarded.decode("latin-1"), self.proxies_count)
            if client:
                port = scope["client"][1] if scope.get("client") else 0
                scope["client"] = (client, port)

        await self.app(scope, receive, send)
