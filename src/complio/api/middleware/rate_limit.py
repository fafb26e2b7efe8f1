"""Rate limiting using slowapi.

Reads fall under the default limit applied by ``SlowAPIMiddleware``; routes
that write or call out to providers are decorated with ``write_limit``.
"""

import logging

from fastapi import Request
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from complio.config import settings

logger = logging.getLogger(__name__)


def get_rate_limit_key(request: Request) -> str:
    """Bucket by org + user for authenticated callers, IP for anonymous."""
    user = getattr(request.state, "user", {})
    sub = user.get("sub", "")
    if sub and sub not in ("anonymous", ""):
        return f"org:{user.get('org_id') or '-'}:user:{sub}"
    return get_remote_address(request)


limiter = Limiter(
    key_func=get_rate_limit_key,
    default_limits=[f"{settings.rate_limit_reads_per_minute}/minute"],
    storage_uri="memory://" if settings.local_mode else settings.redis_url,
    in_memory_fallback_enabled=True,
    enabled=settings.rate_limit_enabled,
)

write_limit = limiter.limit(f"{settings.rate_limit_writes_per_minute}/minute")


def setup_rate_limiter(app) -> None:
    """Attach the slowapi limiter to the FastAPI app."""
    if not settings.rate_limit_enabled:
        return

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)
    logger.info("Rate limiter configured (writes=%d/min, reads=%d/min)",
                settings.rate_limit_writes_per_minute,
                settings.rate_limit_reads_per_minute)
