from slowapi import Limiter
from slowapi.util import get_remote_address

from rintrack.core.settings import settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[f"{settings.rate_limit_per_minute}/minute"],
    storage_uri=settings.rate_limit_storage_uri or settings.redis_url,
)


def login_limit() -> str:
    return f"{settings.login_rate_limit_per_minute}/minute"


__all__ = ["limiter", "login_limit"]
