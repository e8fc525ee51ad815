from fastapi import APIRouter

from rintrack.core import health
from rintrack.core.limiter import limiter

router = APIRouter(tags=["health"])


@router.get("/health/live", summary="Liveness check")
@limiter.exempt
async def health_live() -> dict:
    return await health.live_payload()


@router.get("/health/ready", summary="Readiness check (database and redis)")
@limiter.exempt
async def health_ready() -> dict:
    return await health.ready_payload()


@router.get("/health", summary="Readiness check alias")
@limiter.exempt
async def read_health() -> dict:
    return await health.ready_payload()


@router.get("/status/summary", tags=["status"], summary="Readiness plus version and integrations")
@limiter.exempt
async def status_summary() -> dict:
    return await health.status_summary_payload()
