"""
Rate Limiting for SocietySync API
=================================
Implements rate limiting using slowapi.

Storage comes from RATE_LIMIT_STORAGE_URI (in-memory by default, a redis://
URI in multi-process deployments). Sensitive endpoints carry their own limits:
- /auth/otp/send: 3 req/min (each call sends an email)
- /auth/login: 5 req/min (brute force protection)
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.logging_config import logger


def get_user_identifier(request: Request) -> str:
    """
    Get rate limit key.

    Priority:
    1. Authenticated user ID (set on request.state by the auth dependency)
    2. IP address (for anonymous users)
    """
    user_id = getattr(request.state, 'user_id', None)
    if user_id:
        return f"user:{user_id}"

    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_user_identifier,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """Return a JSON 429 with a Retry-After header"""
    retry_after = "60"

    logger.warning(
        f"[RateLimit] Exceeded for {get_user_identifier(request)}: {exc.detail}"
    )

    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "message": "Too many requests. Please slow down.",
            "error": {
                "code": "RATE_LIMITED",
                "message": "Too many requests. Please slow down.",
                "details": {"limit": str(exc.detail)},
            },
        },
        headers={"Retry-After": retry_after},
    )


def strict_rate_limit():
    """Very strict rate limit for operations that send email (3/min)"""
    return limiter.limit("3/minute", key_func=get_user_identifier)


def auth_rate_limit():
    """Rate limit for auth endpoints (5/min)"""
    return limiter.limit("5/minute", key_func=get_user_identifier)
