from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.middleware import SlowAPIMiddleware

from rintrack.api.v1 import api_router
from rintrack.core.errors import register_exception_handlers
from rintrack.core.health import APP_VERSION
from rintrack.core.limiter import limiter
from rintrack.core.logging import configure_logging
from rintrack.core.response_envelope import register_response_envelope
from rintrack.core.settings import settings
from rintrack.events import register_event_handlers
from rintrack.middlewares.request_context import RequestContextMiddleware
from rintrack.middlewares.security_headers import SecurityHeadersMiddleware
from rintrack.middlewares.trust_proxies import TrustedProxiesMiddleware

API_PREFIX = "/api/v1"
NO_STORE_PREFIXES = (f"{API_PREFIX}/auth", f"{API_PREFIX}/payment-success")


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="RinTrack Backend", version=APP_VERSION)
    register_exception_handlers(app)
    register_response_envelope(app)
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(TrustedProxiesMiddleware, proxies_count=settings.proxies_count)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        SecurityHeadersMiddleware,
        enable_hsts=settings.enable_hsts,
        no_store_prefixes=NO_STORE_PREFIXES,
    )
    # Credentialed CORS: the session cookie must travel cross-site from the SPA.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(api_router, prefix=API_PREFIX)

    @app.get("/", include_in_schema=False)
    @limiter.exempt
    async def root() -> dict:
        return {"service": "rintrack", "status": "running"}

    register_event_handlers(app)
    return app


app = create_app()
