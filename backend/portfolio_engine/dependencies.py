# backend/portfolio_engine/dependencies.py
"""
Dependency injection module for FastAPI services.

Provides singleton service instances shared across all requests, so the
analytics cache is shared and invalidation reaches every request.

Services are lazily initialized on first use to avoid import-time side effects.

Usage in routers:
    from portfolio_engine.dependencies import get_portfolio_service

    @router.get("/{investor_id}/portfolio")
    def get_portfolio(
        service: PortfolioAnalyticsService = Depends(get_portfolio_service),
    ):
        ...
"""

import logging
from functools import lru_cache

from portfolio_engine.services.portfolio import PortfolioAnalyticsService

logger = logging.getLogger(__name__)


# =============================================================================
# ANALYTICS SERVICES
# =============================================================================


@lru_cache(maxsize=1)
def get_portfolio_service() -> PortfolioAnalyticsService:
    """
    Get the singleton PortfolioAnalyticsService instance.

    Policies, risk-free rate and reporting timezone come from settings.
    """
    logger.debug("Initializing singleton PortfolioAnalyticsService")
    return PortfolioAnalyticsService()


def clear_service_caches() -> None:
    """
    Reset the singletons and their shared result cache.

    Used by tests to get a fresh service per test.
    """
    get_portfolio_service.cache_clear()
    if PortfolioAnalyticsService._shared_cache is not None:
        PortfolioAnalyticsService._shared_cache.clear()
    PortfolioAnalyticsService._shared_cache = None
