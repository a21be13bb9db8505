# backend/portfolio_engine/middleware/rate_limit.py
"""
Rate limiting middleware for API protection.

This module provides rate limiting using slowapi to:
- Prevent API abuse and ledger read amplification
- Ensure fair resource distribution among clients

Rate limits are configured in services/constants.py. Limiting can be
switched off with RATE_LIMIT_ENABLED=false (the test suite does so).

Key by: Client IP address (X-Forwarded-For only from trusted proxies)
Storage: In-memory (single-instance deployments)

Usage:
    from portfolio_engine.middleware.rate_limit import limiter, RATE_LIMIT_ANALYTICS

    @router.get("/{investor_id}/portfolio")
    @limiter.limit(RATE_LIMIT_ANALYTICS)
    def get_portfolio(request: Request, investor_id: int):
        ...
"""

import logging

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from portfolio_engine.config import settings
from portfolio_engine.services.constants import (
    RATE_LIMIT_DEFAULT,
    RATE_LIMIT_HEALTH,
    RATE_LIMIT_ANALYTICS,
    RATE_LIMIT_RETRY_AFTER_SECONDS,
)

logger = logging.getLogger(__name__)


def _is_trusted_proxy(request: Request) -> bool:
    """Check whether X-Forwarded-For headers from this client can be trusted."""
    if settings.trust_proxy_headers:
        return True

    return get_remote_address(request) in settings.trusted_proxy_ips


def _get_client_ip(request: Request) -> str:
    """
    Extract client IP address from request.

    Only trusts X-Forwarded-For headers when the immediate client is a
    trusted proxy, so clients cannot spoof their own key.
    """
    if _is_trusted_proxy(request):
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            # First entry is the original client
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip

    return get_remote_address(request)


# =============================================================================
# LIMITER INSTANCE
# =============================================================================

limiter = Limiter(
    key_func=_get_client_ip,
    default_limits=[RATE_LIMIT_DEFAULT],
    enabled=settings.rate_limit_enabled,
)


# =============================================================================
# RATE LIMIT EXCEEDED HANDLER
# =============================================================================

async def rate_limit_exceeded_handler(
    request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    """
    Return a 429 in the standard error format with a Retry-After header.
    """
    retry_after = RATE_LIMIT_RETRY_AFTER_SECONDS
    limit_info = str(exc.detail) if exc.detail else "Rate limit exceeded"

    logger.warning(
        f"Rate limit exceeded for {_get_client_ip(request)}: {limit_info}"
    )

    return JSONResponse(
        status_code=429,
        content={
            "error": "RateLimitError",
            "message": f"Too many requests. {limit_info}",
            "details": {
                "retry_after": retry_after,
            },
        },
        headers={
            "Retry-After": str(retry_after),
        },
    )


__all__ = [
    "limiter",
    "rate_limit_exceeded_handler",
    "SlowAPIMiddleware",
    "RATE_LIMIT_DEFAULT",
    "RATE_LIMIT_HEALTH",
    "RATE_LIMIT_ANALYTICS",
]
