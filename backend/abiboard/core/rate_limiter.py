"""
Rate Limiting for the AbiBoard API
==================================
slowapi limiter keyed by the authenticated user when known, falling back
to the client address. Only the draft save carries its own limit since it
accepts image uploads; everything else uses the default limit.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from abiboard.core.config import settings
from abiboard.core.exceptions import AbiBoardError, error_response
from abiboard.core.logging_config import logger


def get_user_identifier(request: Request) -> str:
    """
    Get rate limit key.

    Priority:
    1. Authenticated user ID (set on request.state by the auth dependency)
    2. IP address
    """
    user_id = getattr(request.state, 'user_id', None)
    if user_id:
        return f"user:{user_id}"

    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_user_identifier,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    enabled=settings.RATE_LIMIT_ENABLED,
    strategy="fixed-window",
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """Render a rate limit hit in the common error format"""
    logger.warning(
        f"[RateLimit] Exceeded for {get_user_identifier(request)}: {exc.detail}"
    )

    error = AbiBoardError(
        "Zu viele Anfragen. Bitte warte einen Moment.",
        code="RATE_LIMITED",
        details={"limit": str(exc.detail)}
    )
    return JSONResponse(
        status_code=429,
        content=error_response(error),
        headers={"Retry-After": "60"}
    )
