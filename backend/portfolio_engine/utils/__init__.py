# backend/portfolio_engine/utils/__init__.py
"""
Utility modules for the Portfolio Analytics Engine.

This package contains cross-cutting utilities used throughout the application:
- logging: Logging configuration and setup with correlation ID support
- context: Request context management for correlation IDs
- date_utils: Calendar month helpers for the time-series builder

Usage:
    from portfolio_engine.utils import setup_logging, get_logger
    from portfolio_engine.utils import get_correlation_id, set_correlation_id
    from portfolio_engine.utils.date_utils import iter_months
"""

from portfolio_engine.utils.context import (
    get_correlation_id,
    set_correlation_id,
    clear_correlation_id,
    get_request_context,
    set_request_context,
    clear_request_context,
)
from portfolio_engine.utils.logging import setup_logging, get_logger

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    # Context
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "get_request_context",
    "set_request_context",
    "clear_request_context",
]
