# backend/portfolio_engine/middleware/correlation.py
"""
Correlation ID middleware for request tracing.

This middleware:
1. Extracts or generates a correlation ID for each request
2. Stores it in context for use throughout the request lifecycle
3. Adds it to response headers for client-side tracing
4. Clears all request context when the request completes

Correlation ID Sources (in order of precedence):
1. X-Correlation-ID header (from client or upstream service)
2. X-Request-ID header (alternative header name)
3. Generated UUID if neither header is present

Client Usage:
    curl -H "X-Correlation-ID: my-trace-123" http://localhost:8000/investors/1/portfolio

    # Response will include the correlation ID
    # X-Correlation-ID: my-trace-123
"""

import logging
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from portfolio_engine.utils.context import (
    set_correlation_id,
    clear_correlation_id,
    clear_request_context,
)

logger = logging.getLogger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Middleware that manages correlation IDs for request tracing.

    For each request:
    1. Extracts correlation ID from headers (X-Correlation-ID or X-Request-ID)
    2. Generates a new UUID if no header is present
    3. Stores the ID in context (accessible via get_correlation_id())
    4. Adds the ID to response headers
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Response],
    ) -> Response:
        correlation_id = self._get_correlation_id(request)
        set_correlation_id(correlation_id)

        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = correlation_id
            return response

        finally:
            clear_correlation_id()
            clear_request_context()

    def _get_correlation_id(self, request: Request) -> str:
        """Return the caller's correlation ID, or a new UUID."""
        correlation_id = request.headers.get(CORRELATION_ID_HEADER)
        if correlation_id:
            return correlation_id

        correlation_id = request.headers.get(REQUEST_ID_HEADER)
        if correlation_id:
            return correlation_id

        return str(uuid.uuid4())
