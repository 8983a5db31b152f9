from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.settings import settings

# Per-client budget shared by every route without its own @limiter.limit.
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[lambda: f"{settings.rate_limit_per_minute}/minute"],
    storage_uri=settings.rate_limit_storage_uri,
    enabled=settings.rate_limit_enabled,
)

__all__ = ["limiter"]
