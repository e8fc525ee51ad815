from __future__ import annotations

from datetime import datetime, timezone
from functools import lru_cache
from typing import Any

from redis.asyncio import Redis
from sqlalchemy import text

from rintrack.core import firebase
from rintrack.core.settings import settings
from rintrack.db.session import engine

APP_VERSION = "0.1.0"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@lru_cache(maxsize=1)
def get_redis_client() -> Redis:
    return Redis.from_url(settings.redis_url, decode_responses=True)


async def _check_db() -> dict[str, str]:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as exc:  # pragma: no cover - needs a live database
        return {"status": "error", "error": type(exc).__name__}
    return {"status": "ok"}


async def _check_redis() -> dict[str, str]:
    try:
        await get_redis_client().ping()
    except Exception as exc:  # pragma: no cover - needs a live redis
        return {"status": "error", "error": type(exc).__name__}
    return {"status": "ok"}


async def live_payload() -> dict[str, str]:
    return {"status": "ok", "timestamp": _now()}


async def ready_payload() -> dict[str, Any]:
    """Database and Redis checks; ``ready`` only when every check is ok."""
    checks = {"database": await _check_db(), "redis": await _check_redis()}
    ready = all(check.get("status") == "ok" for check in checks.values())
    return {
        "status": "ok" if ready else "degraded",
        "ready": ready,
        "environment": settings.environment,
        "timestamp": _now(),
        "checks": checks,
    }


async def status_summary_payload() -> dict[str, Any]:
    payload = await ready_payload()
    payload["version"] = APP_VERSION
    # Configured, not reachable: neither SDK is called here
    payload["integrations"] = {
        "identity_issuer": firebase.is_configured(),
        "payment_processor": bool(settings.stripe_secret_key),
    }
    return payload
