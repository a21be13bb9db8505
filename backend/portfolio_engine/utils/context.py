# backend/portfolio_engine/utils/context.py
"""
Request context management.

Holds request-scoped data in contextvars so it propagates through
async/await calls and never leaks between concurrent requests:
- Correlation ID for request tracing
- Investor ID of the portfolio being computed, for log enrichment

Usage:
    from portfolio_engine.utils.context import get_correlation_id, set_correlation_id

    # In middleware
    set_correlation_id("abc-123")

    # In any service/handler
    correlation_id = get_correlation_id()  # Returns "abc-123"
"""

from contextvars import ContextVar
from typing import Any

# =============================================================================
# CONTEXT VARIABLES
# =============================================================================

_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)

_request_context_var: ContextVar[dict[str, Any]] = ContextVar("request_context", default={})


# =============================================================================
# CORRELATION ID
# =============================================================================

def get_correlation_id() -> str | None:
    """Return the current request's correlation ID, or None if not set."""
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    """
    Set the correlation ID for the current request.

    This should be called by middleware at the start of each request.
    """
    _correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    """Clear the correlation ID at the end of a request."""
    _correlation_id_var.set(None)


# =============================================================================
# EXTENDED CONTEXT
# =============================================================================

def get_request_context() -> dict[str, Any]:
    """Return a copy of the request context dictionary."""
    return _request_context_var.get().copy()


def set_request_context(key: str, value: Any) -> None:
    """
    Set a value in the request context.

    The dictionary is copied before writing so that a context inherited
    from a parent task is never mutated in place.
    """
    ctx = _request_context_var.get().copy()
    ctx[key] = value
    _request_context_var.set(ctx)


def clear_request_context() -> None:
    """Clear all request context."""
    _request_context_var.set({})
